from tax_engine.assessment.aggregator import LiabilityAggregator, assess, penalty_newly_assessed
from tax_engine.assessment.batch import BatchReport, assess_batch

__all__ = [
    "BatchReport",
    "LiabilityAggregator",
    "assess",
    "assess_batch",
    "penalty_newly_assessed",
]
