"""Initialise the rule collection and ingest the clothing rule file."""

from __future__ import annotations

import argparse
from typing import Callable, List, Optional

from outfit_app.app import OutfitRecommenderApp
from outfit_app.errors import OutfitRecommenderError


def main(
    argv: Optional[List[str]] = None,
    app_factory: Callable[[], OutfitRecommenderApp] = OutfitRecommenderApp,
) -> int:
    parser = argparse.ArgumentParser(description="Load clothing rules into the vector store")
    parser.add_argument(
        "--rules",
        default=None,
        help="Path to the clothing rules JSON file (defaults to the configured RULES_PATH).",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete existing records before ingesting, avoiding duplicates.",
    )
    args = parser.parse_args(argv)

    try:
        with app_factory() as app:
            report = app.load_rules(args.rules, clear=args.clear)
    except OutfitRecommenderError as exc:
        print(f"Error: {exc}")
        return 1

    print(f"Stored {report.inserted} rules in {app.config.collection_name} ({report.failed} failed)")
    return 1 if report.failed and not report.inserted else 0


if __name__ == "__main__":
    raise SystemExit(main())
