# core/entities.py
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Union
import numpy as np
from util.enums import ContentType


@dataclass
class FetchResult:
    content_type: ContentType
    body: Union[str, bytes]  # bytes only for PDF
    title: Optional[str] = None


FetchFailureReason = Literal["timeout", "too_large", "http_status", "network"]


@dataclass
class FetchFailure:
    reason: FetchFailureReason
    message: str


@dataclass
class ExtractionResult:
    paragraphs: List[str]
    title: Optional[str] = None


@dataclass
class DocumentRecord:
    id: str
    url: str
    title: str = ""
    content_hash: str = ""
    embedding_model: str = ""
    chunk_count: int = 0


@dataclass
class StoredChunk:
    index: int
    content: str
    embedding: np.ndarray  # (dim,) float32
    dim: int
    chunk_hash: str


@dataclass
class RetrievalScore:
    index: int
    content: str
    score: float


@dataclass
class IndexOutcome:
    document_id: str
    cache_hit: bool
    embedded: List[int] = field(default_factory=list)  # chunk indices sent to the provider
    deleted_from: Optional[int] = None


@dataclass(frozen=True)
class ProviderConfig:
    """
    Connection settings for the OpenAI-compatible completion/embedding API.
    """

    api_key: str
    base_url: str
    model: str
    embedding_model: str
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class PipelineConfig:
    fetch_timeout_ms: int = 12000
    max_content_bytes: int = 15 * 1024 * 1024
    min_content_length: int = 800
    max_direct_input_length: int = 12000
    retrieval_chunk_size: int = 1200
    map_reduce_chunk_size: int = 4000
    top_k: int = 8
    prompt_max_chunks: int = 6
    default_query: str = "RESUME"
    fallback_language: str = "fr"
    micro_search_enabled: bool = False


@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str
