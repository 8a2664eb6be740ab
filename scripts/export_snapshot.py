#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from tax_engine.rates.loader import dump_snapshot  # noqa: E402
from tax_engine.rates.sierra_leone import default_registry  # noqa: E402


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write the built-in rate snapshot as JSON")
    parser.add_argument("output", help="Destination JSON path")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    registry = default_registry()
    Path(args.output).write_text(json.dumps(dump_snapshot(registry), indent=2), encoding="utf-8")
    print(f"Wrote snapshot {registry.version} to {args.output}")


if __name__ == "__main__":
    main()
