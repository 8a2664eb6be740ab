from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from tax_engine.config import Settings
from tax_engine.core.models import PenaltyRule, RateTableEntry
from tax_engine.rates.registry import RateRegistry
from tax_engine.rates.sierra_leone import default_registry

logger = logging.getLogger("tax_engine").getChild("rates")


class RateSnapshotDocument(BaseModel):
    version: str
    entries: list[RateTableEntry] = Field(default_factory=list)
    penalty_rules: list[PenaltyRule] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_registry(self) -> RateRegistry:
        return RateRegistry(self.entries, self.penalty_rules, version=self.version)


def snapshot_from_mapping(data: Mapping[str, Any]) -> RateRegistry:
    return RateSnapshotDocument.model_validate(data).to_registry()


def load_snapshot(path: str | Path) -> RateRegistry:
    snapshot_path = Path(path)
    raw = snapshot_path.read_text(encoding="utf-8")
    registry = snapshot_from_mapping(json.loads(raw))
    logger.info(
        "Loaded rate snapshot %s from %s (sha256=%s)",
        registry.version,
        snapshot_path,
        hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12],
    )
    return registry


def dump_snapshot(registry: RateRegistry) -> dict[str, Any]:
    document = RateSnapshotDocument(
        version=registry.version,
        entries=list(registry.entries()),
        penalty_rules=list(registry.all_penalty_rules()),
    )
    return document.model_dump(mode="json")


def load_registry(settings: Settings) -> RateRegistry:
    if settings.rate_snapshot_path:
        return load_snapshot(settings.rate_snapshot_path)
    registry = default_registry()
    logger.debug("No RATE_SNAPSHOT_PATH configured; using built-in snapshot %s", registry.version)
    return registry


__all__ = [
    "RateSnapshotDocument",
    "dump_snapshot",
    "load_registry",
    "load_snapshot",
    "snapshot_from_mapping",
]
