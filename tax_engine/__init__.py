"""Tax determination engine: base tax, MAT, penalties and interest for one filing obligation."""
from __future__ import annotations

from tax_engine.assessment import LiabilityAggregator, assess, assess_batch
from tax_engine.core.models import (
    AssessmentFailure,
    TaxAssessmentRequest,
    TaxAssessmentResult,
)
from tax_engine.rates import RateRegistry, default_registry

__version__ = "0.1.0"

__all__ = [
    "AssessmentFailure",
    "LiabilityAggregator",
    "RateRegistry",
    "TaxAssessmentRequest",
    "TaxAssessmentResult",
    "assess",
    "assess_batch",
    "default_registry",
]
