"""Billing API routes."""

from packages.billing.routes import jobs, payments, plans, subscriptions

__all__ = ["jobs", "payments", "plans", "subscriptions"]
