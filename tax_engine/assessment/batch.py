from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from tax_engine.assessment.aggregator import LiabilityAggregator
from tax_engine.core.models import AssessmentFailure, AssessmentOutcome, TaxAssessmentRequest, TaxAssessmentResult
from tax_engine.rates.registry import RateRegistry

logger = logging.getLogger("tax_engine").getChild("batch")


@dataclass(frozen=True)
class BatchReport:
    registry_version: str
    outcomes: tuple[AssessmentOutcome, ...]

    @property
    def results(self) -> list[TaxAssessmentResult]:
        return [o for o in self.outcomes if isinstance(o, TaxAssessmentResult)]

    @property
    def failures(self) -> list[AssessmentFailure]:
        return [o for o in self.outcomes if isinstance(o, AssessmentFailure)]


def assess_batch(
    requests: Sequence[TaxAssessmentRequest],
    registry: RateRegistry,
    *,
    max_workers: int = 4,
    apply_minimum_floor: bool = True,
) -> BatchReport:
    """Assess every request against one shared snapshot.

    Outcomes come back in input order. A failing client is reported in the
    batch and does not stop the others.
    """
    aggregator = LiabilityAggregator(registry, apply_minimum_floor=apply_minimum_floor)
    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="assess") as pool:
        outcomes = tuple(pool.map(aggregator.assess, requests))
    report = BatchReport(registry_version=registry.version, outcomes=outcomes)
    for failure in report.failures:
        logger.warning(
            "Batch client=%s failed at %s (%s)", failure.client_id, failure.stage.value, failure.code
        )
    logger.info(
        "Batch complete: snapshot=%s assessed=%s failed=%s",
        registry.version,
        len(report.results),
        len(report.failures),
    )
    return report


__all__ = ["BatchReport", "assess_batch"]
