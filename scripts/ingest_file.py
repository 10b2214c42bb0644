#!/usr/bin/env python
"""Vectorize a file of saved map-tool responses.

Usage:
    python -m scripts.ingest_file --input data/responses.json

The input is a JSON list of ``{"tool": "...", "payload": {...}}`` items.
Items are grouped by tool and each group is vectorized as one batch.
"""

import argparse
import asyncio
import json
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any

from geovec.config import get_settings
from geovec.logging_config import get_logger, setup_logging
from geovec.pipeline.factory import build_pipeline

logger = get_logger(__name__)


def load_items(path: Path) -> dict[str, list[dict[str, Any]]]:
    """Load items and group their payloads by tool, keeping file order."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list")

    grouped: dict[str, list[dict[str, Any]]] = {}
    for position, item in enumerate(data):
        if not isinstance(item, dict) or not isinstance(item.get("payload"), dict):
            logger.warning(f"Skipping malformed item {position}")
            continue
        grouped.setdefault(str(item.get("tool", "")), []).append(item["payload"])
    return grouped


async def run_ingestion(input_path: Path, summary_path: Path | None = None) -> bool:
    """Vectorize every item in the input file.

    Returns:
        True if every item was vectorized.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)

    grouped = load_items(input_path)
    total = sum(len(items) for items in grouped.values())
    logger.info(f"Loaded {total} items for {len(grouped)} tools from {input_path}")

    counts: dict[str, dict[str, int]] = {}
    async with AsyncExitStack() as stack:
        vectorizer = await build_pipeline(settings, stack)
        if not vectorizer.is_enabled:
            logger.error(
                "Vectorization is disabled; set VECTORIZATION_ENABLED and EMBEDDING_ENDPOINT"
            )
            return False

        for tool, items in grouped.items():
            records = await vectorizer.process_batch(tool, items)
            counts[tool] = {"items": len(items), "vectorized": len(records)}

    vectorized = sum(c["vectorized"] for c in counts.values())

    print("\n" + "=" * 60)
    print("INGESTION SUMMARY")
    print("=" * 60)
    for tool, c in counts.items():
        print(f"  {tool or '<no tool>'}: {c['vectorized']}/{c['items']}")
    print(f"Total: {vectorized}/{total}")
    print("=" * 60)

    if summary_path:
        summary_path.write_text(
            json.dumps({"total": total, "vectorized": vectorized, "tools": counts}, indent=2)
        )
        logger.info(f"Summary saved to {summary_path}")

    return vectorized == total


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Vectorize a file of saved map-tool responses",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to a JSON list of {tool, payload} items",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Path to save a JSON summary",
    )

    args = parser.parse_args()

    ok = asyncio.run(run_ingestion(input_path=args.input, summary_path=args.summary))

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
