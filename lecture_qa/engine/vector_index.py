"""
Pinecone vector index access.

The lecture index stores one vector per lecture chunk with metadata such as
``lectureId``, ``lectureName`` and the chunk text (under varying keys,
depending on which ingestion script wrote it).
"""
import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lecture_qa.core.config import settings

logger = logging.getLogger(__name__)

SNIPPET_KEYS = ("fullText", "text", "chunk", "content", "body", "pageText")
# Fallback snippet: any metadata string longer than this
MIN_FALLBACK_SNIPPET_LENGTH = 20


@dataclass
class RetrievalMatch:
    """One hit from the vector index."""
    id: str
    score: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Best snippet text found in the metadata, empty if none."""
        for key in SNIPPET_KEYS:
            value = self.metadata.get(key)
            if isinstance(value, str) and value.strip():
                return value
        for value in self.metadata.values():
            if isinstance(value, str) and len(value) > MIN_FALLBACK_SNIPPET_LENGTH:
                return value
        return ""

    @property
    def label(self) -> Optional[str]:
        return self.metadata.get("lectureName")

    @property
    def lecture_id(self) -> Optional[str]:
        value = self.metadata.get("lectureId")
        return None if value is None else str(value)


def _field(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def parse_matches(response: Any) -> List[RetrievalMatch]:
    """Convert a Pinecone query response (SDK object or dict) to matches."""
    matches = []
    for raw in _field(response, "matches", None) or []:
        metadata = _field(raw, "metadata", None) or {}
        score = _field(raw, "score", None)
        matches.append(
            RetrievalMatch(
                id=str(_field(raw, "id", "")),
                score=float(score) if score is not None else 0.0,
                metadata=dict(metadata),
            )
        )
    return matches


# =============================================================================
# Pinecone client singleton
# =============================================================================

_pinecone_client = None
_client_lock = threading.Lock()


def get_pinecone_client():
    """Create the Pinecone client once per process."""
    global _pinecone_client
    if _pinecone_client is None:
        with _client_lock:
            if _pinecone_client is None:
                if not settings.pinecone_api_key:
                    raise RuntimeError("PINECONE_API_KEY is not configured")
                from pinecone import Pinecone
                _pinecone_client = Pinecone(api_key=settings.pinecone_api_key)
                logger.info("Pinecone client initialized")
    return _pinecone_client


class PineconeVectorIndex:
    """Queries one namespace of a Pinecone index."""

    def __init__(
        self,
        index=None,
        index_name: Optional[str] = None,
        namespace: Optional[str] = None,
    ):
        self._index = index
        self.index_name = index_name or settings.pinecone_index
        self.namespace = namespace or settings.pinecone_namespace

    @property
    def index(self):
        """Lazy handle on the Pinecone index."""
        if self._index is None:
            self._index = get_pinecone_client().Index(self.index_name)
            logger.info(f"Connected to Pinecone index '{self.index_name}' (namespace '{self.namespace}')")
        return self._index

    def _query(self, vector: List[float], top_k: int, filter: Optional[dict]) -> List[RetrievalMatch]:
        kwargs = {
            "vector": vector,
            "top_k": top_k,
            "namespace": self.namespace,
            "include_metadata": True,
            "include_values": False,
        }
        if filter:
            kwargs["filter"] = filter
        return parse_matches(self.index.query(**kwargs))

    async def query(
        self,
        vector: List[float],
        top_k: int,
        filter: Optional[dict] = None,
    ) -> List[RetrievalMatch]:
        """Nearest-neighbour query; the sync SDK call runs in a worker thread."""
        return await asyncio.to_thread(self._query, vector, top_k, filter)
