"""Scheduling and reminder engine for a dental clinic front desk."""
