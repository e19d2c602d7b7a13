"""
Tax engine: rule selection, inclusive and exclusive calculation, tax settings.
"""

from resumeforge.platform.billing.tax.calculator import (
    compute_invoice_tax,
    exclusive_tax,
    inclusive_tax,
    select_applicable_rules,
)
from resumeforge.platform.billing.tax.models import TaxComputation, TaxMode, TaxRule

__all__ = [
    "TaxComputation",
    "TaxMode",
    "TaxRule",
    "compute_invoice_tax",
    "exclusive_tax",
    "inclusive_tax",
    "select_applicable_rules",
]
