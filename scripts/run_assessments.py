#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from tax_engine.assessment.batch import BatchReport, assess_batch  # noqa: E402
from tax_engine.config import get_settings  # noqa: E402
from tax_engine.core.models import AssessmentFailure, TaxAssessmentRequest  # noqa: E402
from tax_engine.runtime import assessment_run  # noqa: E402


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute tax assessments for a batch of obligations")
    parser.add_argument("--requests", required=True, help="Path to JSON array of assessment requests")
    parser.add_argument("--snapshot", help="Rate snapshot JSON (defaults to RATE_SNAPSHOT_PATH or built-in rates)")
    parser.add_argument("--workers", type=int, help="Worker pool size (defaults to ASSESSMENT_MAX_WORKERS)")
    parser.add_argument("--output", help="Write outcomes as JSON to this path")
    return parser.parse_args(argv)


def load_requests(path: Path) -> list[TaxAssessmentRequest]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return [TaxAssessmentRequest.model_validate(item) for item in data]


def outcomes_payload(report: BatchReport) -> dict[str, Any]:
    outcomes: list[dict[str, Any]] = []
    for outcome in report.outcomes:
        if isinstance(outcome, AssessmentFailure):
            outcomes.append({"ok": False, **outcome.as_dict()})
        else:
            outcomes.append(
                {"ok": True, "fingerprint": outcome.fingerprint(), "result": outcome.model_dump(mode="json")}
            )
    return {"registry_version": report.registry_version, "outcomes": outcomes}


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    overrides: dict[str, Any] = {}
    if args.snapshot:
        overrides["rate_snapshot_path"] = args.snapshot
    if args.workers:
        overrides["max_workers"] = max(1, args.workers)
    settings = get_settings().model_copy(update=overrides)

    requests = load_requests(Path(args.requests))
    with assessment_run("batch", settings=settings) as run:
        report = assess_batch(
            requests,
            run.registry,
            max_workers=settings.max_workers,
            apply_minimum_floor=settings.feature_minimum_tax_floor,
        )

    for outcome in report.outcomes:
        if isinstance(outcome, AssessmentFailure):
            print(f"{outcome.client_id}: FAILED at {outcome.stage.value} ({outcome.code})")
        else:
            print(f"{outcome.client_id}: total_due={outcome.total_due} [{outcome.tax_type.value}]")

    if args.output:
        Path(args.output).write_text(json.dumps(outcomes_payload(report), indent=2), encoding="utf-8")
    return 1 if report.failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
