"""CLI entrypoint for the trivia generation pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from config import get_settings
from generation.duplicates import DuplicateDetector
from generation.rate_limit import RateLimitClassifier
from generation.runtime import build_pipeline
from processing.embedder import get_embedder
from storage.item_store import get_item_store
from utils.exceptions import TriviaPipelineError
from utils.logger import setup_logger


def _print(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _generate(target, budget) -> dict:
    pipeline = build_pipeline(budget_seconds=budget)
    try:
        result = await pipeline.run(target)
    finally:
        await pipeline.aclose()
    return result.model_dump(mode="json")


def main() -> int:
    parser = argparse.ArgumentParser(description="Numeric trivia generation pipeline")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", default=None, help="also write logs to logs/<name>")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="generate items until the active target is met")
    gen.add_argument("--target", type=int, default=None)
    gen.add_argument("--budget", type=float, default=None, help="wall-clock budget in seconds")

    sub.add_parser("count", help="count active items")

    dup = sub.add_parser("check-duplicate", help="check a topic summary against the corpus")
    dup.add_argument("summary")

    classify = sub.add_parser("classify-error", help="classify a provider error message")
    classify.add_argument("message")

    args = parser.parse_args()
    setup_logger(level=getattr(logging, str(args.log_level).upper(), logging.INFO), log_file=args.log_file)
    settings = get_settings()

    if args.command == "classify-error":
        signal = RateLimitClassifier.from_settings(settings.rate_limit).classify(args.message)
        _print(signal.model_dump())
        return 0

    try:
        if args.command == "generate":
            _print(asyncio.run(_generate(args.target, args.budget)))
            return 0

        store = get_item_store()
        try:
            if args.command == "count":
                _print({"active": store.count_active()})
                return 0

            if args.command == "check-duplicate":
                embedding = get_embedder().embed_query(args.summary)
                detector = DuplicateDetector(
                    store,
                    lexical_threshold=settings.generation.lexical_threshold,
                    embedding_threshold=settings.generation.embedding_threshold,
                )
                check = detector.check(args.summary, embedding)
                _print({
                    "duplicate": check.duplicate,
                    "match": check.match.model_dump() if check.match else None,
                })
                return 0
        finally:
            store.close()
    except TriviaPipelineError as exc:
        _print({"error": str(exc)})
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
