"""
ResumeForge Platform - billing and document preview services.

This package provides the backend services behind the resume builder:
- Subscription lifecycle (grace periods, scheduled plan changes, gateway sync)
- Billing ledger (duplicate gateway records, currency correction)
- Tax engine (Indian GST, inclusive and exclusive modes) and invoicing
- Resume and cover letter preview layout
"""

__version__ = "1.0.0"


def get_version() -> str:
    """Get platform version."""
    return __version__
