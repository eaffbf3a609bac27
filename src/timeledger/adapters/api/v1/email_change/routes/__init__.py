"""Subpackage aggregating individual email-change route modules."""

__all__ = [
    "requests",
    "verify",
    "resend",
    "approve",
    "reject",
    "cancel",
    "process",
]
