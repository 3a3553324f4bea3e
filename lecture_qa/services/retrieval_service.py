"""
Retrieval Service - lecture context lookup.

Embeds a query, searches the lecture index (optionally restricted to one
lecture) and reports the outcome as data: retrieval problems never raise,
they come back as an empty RetrievalOutcome with ``error`` set.

Older ingestion runs stored chunks without a ``lectureId`` metadata field
(only an id of the form ``{lectureId}_chunk_{n}``), so a filtered query
that finds nothing is retried as a broad unfiltered query filtered locally.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from lecture_qa.core.config import settings
from lecture_qa.engine.embeddings import BaseEmbedder, get_embedder
from lecture_qa.engine.vector_index import PineconeVectorIndex, RetrievalMatch

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


@dataclass
class RetrievalOutcome:
    """Result of one retrieval attempt."""
    matches: List[RetrievalMatch] = field(default_factory=list)
    error: Optional[str] = None
    used_fallback: bool = False

    @property
    def best(self) -> Optional[RetrievalMatch]:
        return self.matches[0] if self.matches else None


def lecture_filter(lecture_id: str) -> dict:
    """Metadata filter restricting a query to one lecture."""
    return {"lectureId": {"$eq": str(lecture_id)}}


def belongs_to_lecture(match: RetrievalMatch, lecture_id: str) -> bool:
    """True if the match carries the lecture id in metadata or in its id."""
    lecture_id = str(lecture_id)
    return match.lecture_id == lecture_id or match.id.startswith(f"{lecture_id}_chunk_")


def build_context(
    matches: List[RetrievalMatch],
    snippet_max_chars: Optional[int] = None,
    context_max_chars: Optional[int] = None,
) -> str:
    """
    Join match snippets into one context block for the prompt.

    Each snippet is capped at 2000 chars and the joined text at 20000
    (both configurable). Matches without usable text are skipped.
    """
    snippet_max = snippet_max_chars or settings.snippet_max_chars
    context_max = context_max_chars or settings.context_max_chars

    snippets = [m.text[:snippet_max] for m in matches]
    snippets = [s for s in snippets if s]
    return CONTEXT_SEPARATOR.join(snippets)[:context_max]


class RetrievalService:
    """Embedding + vector search with lecture filtering and fallback."""

    def __init__(
        self,
        embedder: Optional[BaseEmbedder] = None,
        index: Optional[PineconeVectorIndex] = None,
    ):
        self._embedder = embedder
        self._index = index

    @property
    def embedder(self) -> BaseEmbedder:
        if self._embedder is None:
            self._embedder = get_embedder()
        return self._embedder

    @property
    def index(self) -> PineconeVectorIndex:
        if self._index is None:
            self._index = PineconeVectorIndex()
        return self._index

    async def _fallback(self, vector: List[float], top_k: int, lecture_id: str) -> RetrievalOutcome:
        broad = await self.index.query(vector, top_k=settings.retrieval_fallback_top_k)
        matches = [m for m in broad if belongs_to_lecture(m, lecture_id)][:top_k]
        logger.info(
            f"[RETRIEVAL] Fallback kept {len(matches)}/{len(broad)} matches for lecture {lecture_id}"
        )
        return RetrievalOutcome(matches=matches, used_fallback=True)

    async def search(
        self,
        query: str,
        top_k: int,
        lecture_id: Optional[str] = None,
        allow_fallback: bool = True,
    ) -> RetrievalOutcome:
        """
        Find the lecture chunks closest to a query.

        Args:
            query: Free text (an exam question or a chat prompt)
            top_k: Number of matches wanted
            lecture_id: Restrict results to one lecture
            allow_fallback: Retry unfiltered when the filtered query fails or is empty

        Returns:
            RetrievalOutcome; never raises
        """
        try:
            vector = await self.embedder.embed_query(query)
        except Exception as e:
            logger.error(f"[RETRIEVAL] Embedding failed: {e}")
            return RetrievalOutcome(error=f"Embedding failed: {e}")

        query_filter = lecture_filter(lecture_id) if lecture_id is not None else None
        primary_error: Optional[str] = None

        try:
            matches = await self.index.query(vector, top_k=top_k, filter=query_filter)
            if matches or query_filter is None or not allow_fallback:
                logger.info(f"[RETRIEVAL] {len(matches)} match(es) for query ({len(query)} chars)")
                return RetrievalOutcome(matches=matches)
        except Exception as e:
            logger.warning(f"[RETRIEVAL] Query failed: {e}")
            if query_filter is None or not allow_fallback:
                return RetrievalOutcome(error=f"Vector query failed: {e}")
            primary_error = str(e)

        if primary_error is None:
            logger.info(f"[RETRIEVAL] Filtered query empty for lecture {lecture_id}, trying fallback")

        try:
            return await self._fallback(vector, top_k, lecture_id)
        except Exception as e:
            logger.error(f"[RETRIEVAL] Fallback query failed: {e}")
            return RetrievalOutcome(error=f"Vector query failed: {e}", used_fallback=True)


# Singleton
_retrieval_service: Optional[RetrievalService] = None


def get_retrieval_service() -> RetrievalService:
    """Get or create the RetrievalService singleton."""
    global _retrieval_service
    if _retrieval_service is None:
        _retrieval_service = RetrievalService()
    return _retrieval_service
