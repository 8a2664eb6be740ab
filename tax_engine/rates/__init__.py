from tax_engine.rates.loader import load_registry, load_snapshot, snapshot_from_mapping
from tax_engine.rates.registry import RateRegistry
from tax_engine.rates.sierra_leone import default_registry

__all__ = [
    "RateRegistry",
    "default_registry",
    "load_registry",
    "load_snapshot",
    "snapshot_from_mapping",
]
