# controller/controller_dependencies.py
from functools import lru_cache
from typing import Optional
from config.settings import settings
from core.completion_client import CompletionClient
from core.embedding_index import EmbeddingIndex
from core.embeddings_client import Embedder, build_embedder
from core.entities import PipelineConfig, ProviderConfig
from core.micro_search import MicroSearch
from core.page_fetcher import PageFetcher
from core.retriever import Retriever
from core.summarizer import Summarizer
from repository.document_repository import DocumentRepository
from service.summary_service import SummaryService


def get_provider_config() -> ProviderConfig:
    return ProviderConfig(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        model=settings.OPENAI_MODEL,
        embedding_model=settings.EMBEDDING_MODEL,
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
    )


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        fetch_timeout_ms=settings.FETCH_TIMEOUT_MS,
        max_content_bytes=settings.MAX_CONTENT_BYTES,
        min_content_length=settings.MIN_CONTENT_LENGTH,
        max_direct_input_length=settings.MAX_DIRECT_INPUT_LENGTH,
        retrieval_chunk_size=settings.RETRIEVAL_CHUNK_SIZE,
        map_reduce_chunk_size=settings.MAP_REDUCE_CHUNK_SIZE,
        top_k=settings.RESUME_TOP_K,
        prompt_max_chunks=settings.PROMPT_MAX_CHUNKS,
        default_query=settings.RESUME_QUERY,
        fallback_language=settings.FALLBACK_LANGUAGE,
        micro_search_enabled=settings.MICRO_SEARCH_ENABLED,
    )


@lru_cache(maxsize=1)
def get_embedder() -> Optional[Embedder]:
    # Built once per process; the local provider holds a loaded model.
    if not settings.INDEX_ENABLED:
        return None
    return build_embedder(
        settings.EMBEDDING_PROVIDER,
        get_provider_config(),
        settings.LOCAL_EMBEDDING_MODEL,
        batch_size=settings.EMBEDDING_BATCH_SIZE,
    )


def get_summary_service() -> SummaryService:
    provider = get_provider_config()
    pipeline = get_pipeline_config()
    completion = CompletionClient(provider)

    index: Optional[EmbeddingIndex] = None
    retriever: Optional[Retriever] = None
    embedder = get_embedder()
    if embedder is not None:
        repo = DocumentRepository()
        index = EmbeddingIndex(repo, embedder, batch_size=settings.EMBEDDING_BATCH_SIZE)
        retriever = Retriever(
            repo, embedder, top_k=pipeline.top_k, default_query=pipeline.default_query
        )

    return SummaryService(
        fetcher=PageFetcher(pipeline.fetch_timeout_ms, pipeline.max_content_bytes),
        summarizer=Summarizer(
            completion,
            max_direct_input_length=pipeline.max_direct_input_length,
            map_chunk_size=pipeline.map_reduce_chunk_size,
        ),
        completion=completion,
        config=pipeline,
        index=index,
        retriever=retriever,
        searcher=MicroSearch() if pipeline.micro_search_enabled else None,
    )
