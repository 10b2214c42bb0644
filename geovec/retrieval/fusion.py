"""Multi-query retrieval with primary/secondary result fusion.

The primary retriever's results form the base set. Secondary results only
displace a primary result with a strictly higher score, and merging stops
early once enough secondary results are in and the set is full. That early
stop is a shortcut: it does not guarantee how many secondary results survive
the final truncation.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from geovec.config import RetrievalSettings
from geovec.logging_config import get_logger
from geovec.observability.metrics import track_fusion
from geovec.retrieval.models import RetrievalResult
from geovec.retrieval.retriever import Retriever

logger = get_logger(__name__)

DEFAULT_MAX_RESULTS = 10
DEFAULT_MIN_SECONDARY = 2
DEFAULT_GEO_SUFFIX = "location place nearby"


def rewrite_queries(query: str, suffix: str = DEFAULT_GEO_SUFFIX) -> list[str]:
    """Return the original query and a geographic-emphasis rewrite."""
    return [query, f"{query} {suffix}"]


def fuse_results(
    primary: list[RetrievalResult],
    secondary: list[RetrievalResult],
    max_results: int = DEFAULT_MAX_RESULTS,
    min_secondary: int = DEFAULT_MIN_SECONDARY,
) -> list[RetrievalResult]:
    """Merge two result lists into one ranked, deduplicated list.

    Args:
        primary: Base results; the first occurrence of an id wins.
        secondary: Results merged in when new or strictly better scored.
        max_results: Size of the returned list.
        min_secondary: Secondary additions required before stopping early.

    Returns:
        Results sorted by descending score, at most ``max_results`` long.
    """
    merged: dict[str, RetrievalResult] = {}
    for result in primary:
        merged.setdefault(result.id, result)

    added = 0
    for result in secondary:
        existing = merged.get(result.id)
        if existing is None or result.score > existing.score:
            merged[result.id] = result
            added += 1
        if added >= min_secondary and len(merged) >= max_results:
            break

    track_fusion(added)

    # sorted() is stable, so ties keep insertion order across runs.
    ranked = sorted(merged.values(), key=lambda r: r.score, reverse=True)
    return ranked[:max_results]


class MultiQueryFusionRetriever(Retriever):
    """Runs query rewrites against two retrievers and fuses the results."""

    def __init__(
        self,
        primary: Retriever,
        secondary: Retriever,
        settings: RetrievalSettings | None = None,
        rewriter: Callable[[str], list[str]] | None = None,
    ) -> None:
        """Initialize the fusion retriever.

        Args:
            primary: General-purpose retriever whose results form the base set.
            secondary: Domain retriever merged on top.
            settings: Fusion limits and the geographic query suffix.
            rewriter: Replaces the default two-query rewrite.
        """
        self._primary = primary
        self._secondary = secondary
        self._settings = settings or RetrievalSettings()
        self._rewriter = rewriter or (
            lambda query: rewrite_queries(query, self._settings.geo_query_suffix)
        )

    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Retrieve and fuse results for every query rewrite.

        Args:
            query: The search query.
            top_k: Final result count (defaults to the configured maximum).
            filters: Passed to the secondary retriever only.

        Returns:
            Fused results, most relevant first.
        """
        if not query.strip():
            return []

        queries = self._rewriter(query)
        depth = self._settings.top_k

        primary_batches, secondary_batches = await asyncio.gather(
            asyncio.gather(*(self._primary.retrieve(q, depth) for q in queries)),
            asyncio.gather(*(self._secondary.retrieve(q, depth, filters) for q in queries)),
        )

        primary = [r for batch in primary_batches for r in batch]
        secondary = [r for batch in secondary_batches for r in batch]

        fused = fuse_results(
            primary,
            secondary,
            max_results=top_k or self._settings.max_results,
            min_secondary=self._settings.min_secondary,
        )
        logger.debug(
            "Fused retrieval results",
            extra={
                "queries": len(queries),
                "primary": len(primary),
                "secondary": len(secondary),
                "fused": len(fused),
            },
        )
        return fused


def build_fusion_retriever(
    primary: Retriever,
    secondary_factory: Callable[[], Retriever],
    settings: RetrievalSettings | None = None,
) -> Retriever:
    """Wrap ``primary`` in a fusion retriever when a secondary can be built.

    If the secondary retriever cannot be constructed the primary retriever is
    returned on its own.
    """
    try:
        secondary = secondary_factory()
    except Exception as e:
        logger.warning(
            f"Secondary retriever unavailable, using primary only: {e}",
            extra={"error": str(e)},
        )
        return primary
    return MultiQueryFusionRetriever(primary, secondary, settings)
