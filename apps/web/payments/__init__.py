"""Payments module - gateway checkout, reconciliation, and refunds for orders."""
