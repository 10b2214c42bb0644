"""Construction of a configured pipeline and retriever."""

from contextlib import AsyncExitStack

from geovec.config import Settings
from geovec.embeddings.service import EmbeddingService, HTTPEmbeddingService
from geovec.exceptions import ConfigurationError, ErrorCode, GeoVecError
from geovec.logging_config import get_logger
from geovec.pipeline.vectorizer import GeoVectorizer
from geovec.retrieval.fusion import build_fusion_retriever
from geovec.retrieval.retriever import GeoDataRetriever, Retriever, SemanticRetriever
from geovec.vectorstore.service import GeoVectorStore, QdrantGeoStore

logger = get_logger(__name__)


async def build_pipeline(settings: Settings, stack: AsyncExitStack) -> GeoVectorizer:
    """Build a vectorizer from settings, registering cleanups on ``stack``.

    An unreachable vector store leaves the pipeline with file persistence only.
    """
    embedding_service = HTTPEmbeddingService(settings.embedding)
    stack.push_async_callback(embedding_service.close)

    vector_store: QdrantGeoStore | None = None
    try:
        vector_store = await QdrantGeoStore.connect(settings.qdrant)
    except GeoVecError as e:
        logger.warning(
            f"Vector store unavailable, records are only saved to files: {e.message}",
            extra={"error_code": e.code.value},
        )
    else:
        stack.push_async_callback(vector_store.close)

    return GeoVectorizer(settings, embedding_service, vector_store=vector_store)


def build_retriever(
    settings: Settings,
    embedding_service: EmbeddingService,
    vector_store: GeoVectorStore | None,
) -> Retriever | None:
    """Build the knowledge-base retriever, fused with map data when possible.

    The knowledge collection is the primary source. Vectorized map records
    are merged on top only while vectorization is enabled; otherwise the
    primary retriever is returned alone.

    Returns:
        The retriever, or ``None`` when there is no Qdrant store to query.
    """
    if not isinstance(vector_store, QdrantGeoStore):
        logger.warning("Vector store unavailable, retrieval disabled")
        return None

    primary = SemanticRetriever(
        embedding_service,
        vector_store,
        settings.qdrant.knowledge_collection,
    )

    def geo_retriever() -> Retriever:
        if not settings.vectorization.enabled:
            raise ConfigurationError(
                "Vectorization is not enabled, map records are not indexed",
                code=ErrorCode.VECTORIZATION_DISABLED,
            )
        return GeoDataRetriever(embedding_service, vector_store)

    return build_fusion_retriever(primary, geo_retriever, settings.retrieval)
