"""
Billing package - subscriptions, the payment ledger and auto-renewal.

This package integrates with:
- VNPay: Hosted checkout, signed callbacks and stored card token charges

Renewals are driven by the JobsManager, owned by the API lifespan or the
renewal worker process.
"""
