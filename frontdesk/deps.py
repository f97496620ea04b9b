from fastapi import Request

from frontdesk.clinic import Clinic


def get_clinic(request: Request) -> Clinic:
    # built once in the app lifespan, see frontdesk.main
    return request.app.state.clinic
