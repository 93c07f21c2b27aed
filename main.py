"""Command line entrypoint for a single outfit recommendation."""

from __future__ import annotations

import argparse
import sys
from typing import Callable, List, Optional

from outfit_app.app import OutfitRecommenderApp
from outfit_app.errors import OutfitRecommenderError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recommend an outfit for today's weather")
    parser.add_argument("-question", default="", help="User question text")
    parser.add_argument("-pref", default="casual", help="User preference (e.g., casual, formal)")
    parser.add_argument("-loc", default="Beijing", help="Location for weather")
    parser.add_argument(
        "-remember",
        action="store_true",
        help="Store the question and answer as a preference record",
    )
    return parser


def main(
    argv: Optional[List[str]] = None,
    app_factory: Callable[[], OutfitRecommenderApp] = OutfitRecommenderApp,
) -> int:
    args = build_parser().parse_args(argv)

    try:
        with app_factory() as app:
            result = app.recommend(args.question, args.pref, args.loc)
            if args.remember:
                app.remember(args.question, result, args.pref)
    except OutfitRecommenderError as exc:
        print(f"Error: {exc}")
        return 1

    print(result.text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
