from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from tax_engine.config import Settings, get_settings
from tax_engine.rates.loader import load_registry
from tax_engine.rates.registry import RateRegistry

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


@dataclass(frozen=True)
class AssessmentRun:
    label: str
    settings: Settings
    registry: RateRegistry
    logger: logging.Logger


def _open_log_sink(logger: logging.Logger, settings: Settings, label: str) -> logging.Handler | None:
    if not settings.log_dir:
        return None
    logs_dir = Path(settings.log_dir)
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Unable to create logs directory %s: %s", logs_dir, exc)
        return None
    handler = logging.FileHandler(logs_dir / f"{label}.log", encoding="utf-8")
    handler.setLevel(settings.log_level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return handler


@contextmanager
def assessment_run(label: str, *, settings: Settings | None = None) -> Iterator[AssessmentRun]:
    """Load settings and one registry snapshot for the duration of a run."""
    settings = settings or get_settings()
    base_logger = logging.getLogger("tax_engine")
    base_logger.setLevel(settings.log_level)
    logger = base_logger.getChild(label)
    # The sink sits on the package logger so calculator and batch records reach it too.
    handler = _open_log_sink(base_logger, settings, label)
    try:
        registry = load_registry(settings)
        logger.info(
            "Run started: snapshot=%s workers=%s minimum_tax_floor=%s",
            registry.version,
            settings.max_workers,
            settings.feature_minimum_tax_floor,
        )
        yield AssessmentRun(label=label, settings=settings, registry=registry, logger=logger)
        logger.info("Run complete")
    finally:
        if handler is not None:
            base_logger.removeHandler(handler)
            handler.close()


__all__ = ["AssessmentRun", "assessment_run"]
