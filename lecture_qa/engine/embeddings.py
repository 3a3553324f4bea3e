"""
Query Embeddings for lecture retrieval.

The lecture index was built with multilingual-e5-large, so every backend
must produce vectors in that space (or an index built for it):

- local: sentence-transformers e5 model, ``query: `` prefix, mean pooling,
  L2 normalization
- pinecone: Pinecone hosted inference, ``input_type=query``
- gemini: Gemini embeddings with RETRIEVAL_QUERY task type

Selected by EMBEDDING_BACKEND; ``get_embedder()`` returns one cached instance.
"""
import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import numpy as np

from lecture_qa.core.config import settings

logger = logging.getLogger(__name__)


def l2_normalize(vector: List[float]) -> List[float]:
    """Scale a vector to unit length; a zero vector is returned unchanged."""
    arr = np.asarray(vector, dtype=np.float32)
    norm = np.linalg.norm(arr)
    if norm > 0:
        return (arr / norm).tolist()
    logger.warning("Zero vector encountered during normalization")
    return [float(v) for v in vector]


class BaseEmbedder(ABC):
    """Produces a query vector for retrieval."""

    name: str = "base"

    @abstractmethod
    async def embed_query(self, text: str) -> List[float]:
        """Embed a search query."""
        pass


# =============================================================================
# Local sentence-transformers backend
# =============================================================================

_model_lock = threading.Lock()
_local_models: dict = {}


def _load_local_model(model_name: str):
    """Load a SentenceTransformer once per process."""
    model = _local_models.get(model_name)
    if model is not None:
        return model

    with _model_lock:
        model = _local_models.get(model_name)
        if model is None:
            from sentence_transformers import SentenceTransformer
            logger.info(f"Loading embedding model {model_name} (first use)")
            model = SentenceTransformer(model_name)
            _local_models[model_name] = model
            logger.info(f"Embedding model {model_name} loaded")
    return model


class LocalE5Embedder(BaseEmbedder):
    """
    E5 query embeddings computed in-process.

    The e5 family expects a ``query: `` prefix on search queries; the
    sentence-transformers config of the model applies mean pooling.
    """

    name = "local"
    QUERY_PREFIX = "query: "

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or settings.local_embedding_model

    def _encode(self, text: str) -> List[float]:
        model = _load_local_model(self.model_name)
        vector = model.encode(self.QUERY_PREFIX + text, normalize_embeddings=False)
        return l2_normalize(vector.tolist())

    async def embed_query(self, text: str) -> List[float]:
        return await asyncio.to_thread(self._encode, text)


# =============================================================================
# Pinecone hosted inference backend
# =============================================================================

_VECTOR_KEYS = ("values", "embedding", "vector")


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _is_numeric_list(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) > 0
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
    )


def extract_embedding_vector(response: Any) -> List[float]:
    """
    Pull the first embedding out of a Pinecone inference response.

    Accepts the SDK's EmbeddingsList, plain dicts (``{"data": [...]}``),
    bare lists of embeddings, and items keyed ``values``, ``embedding`` or
    ``vector``; as a last resort the first numeric list field of the item.

    Raises:
        ValueError: no vector could be found
    """
    item = response
    data = _field(response, "data")
    if isinstance(data, (list, tuple)) and data:
        item = data[0]
    elif isinstance(response, (list, tuple)) and response and not _is_numeric_list(response):
        item = response[0]

    if _is_numeric_list(item):
        return [float(v) for v in item]

    for key in _VECTOR_KEYS:
        value = _field(item, key)
        if _is_numeric_list(value):
            return [float(v) for v in value]

    fields = item if isinstance(item, dict) else getattr(item, "__dict__", {})
    for value in fields.values():
        if _is_numeric_list(value):
            return [float(v) for v in value]

    raise ValueError("No embedding vector found in inference response")


class PineconeInferenceEmbedder(BaseEmbedder):
    """Query embeddings from Pinecone's hosted multilingual-e5-large."""

    name = "pinecone"

    def __init__(self, client=None, model_name: Optional[str] = None):
        self._client = client
        self.model_name = model_name or settings.pinecone_embed_model

    @property
    def client(self):
        """Lazy initialization of the Pinecone client."""
        if self._client is None:
            from lecture_qa.engine.vector_index import get_pinecone_client
            self._client = get_pinecone_client()
        return self._client

    def _embed(self, text: str) -> List[float]:
        response = self.client.inference.embed(
            model=self.model_name,
            inputs=[text],
            parameters={"input_type": "query", "truncate": "END"},
        )
        return extract_embedding_vector(response)

    async def embed_query(self, text: str) -> List[float]:
        return await asyncio.to_thread(self._embed, text)


# =============================================================================
# Gemini backend
# =============================================================================

class GeminiQueryEmbedder(BaseEmbedder):
    """
    Gemini embeddings with RETRIEVAL_QUERY task type.

    Only useful against an index built with the same model and dimensions.
    """

    name = "gemini"
    TASK_TYPE_QUERY = "RETRIEVAL_QUERY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        dimensions: Optional[int] = None,
    ):
        self._api_key = api_key or settings.google_api_key
        self._model_name = model_name or settings.gemini_embedding_model
        self._dimensions = dimensions or settings.embedding_dimensions
        self._client = None

        if not self._api_key:
            logger.warning("Google API key not configured. Embeddings will fail.")

    @property
    def client(self):
        """Lazy initialization of Google GenAI client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"Initialized Gemini embedding client with model: {self._model_name}")
        return self._client

    def _embed(self, text: str) -> List[float]:
        from google.genai import types

        response = self.client.models.embed_content(
            model=self._model_name,
            contents=text,
            config=types.EmbedContentConfig(
                task_type=self.TASK_TYPE_QUERY,
                output_dimensionality=self._dimensions,
            ),
        )
        return l2_normalize(response.embeddings[0].values)

    async def embed_query(self, text: str) -> List[float]:
        return await asyncio.to_thread(self._embed, text)


# =============================================================================
# Factory
# =============================================================================

_BACKENDS = {
    "local": LocalE5Embedder,
    "pinecone": PineconeInferenceEmbedder,
    "gemini": GeminiQueryEmbedder,
}

_embedder: Optional[BaseEmbedder] = None
_embedder_lock = threading.Lock()


def create_embedder(backend: str) -> BaseEmbedder:
    """Instantiate the embedder for a backend name."""
    try:
        return _BACKENDS[backend]()
    except KeyError:
        raise ValueError(f"Unknown embedding backend: {backend}") from None


def get_embedder() -> BaseEmbedder:
    """Get the process-wide embedder for the configured backend."""
    global _embedder
    if _embedder is None:
        with _embedder_lock:
            if _embedder is None:
                _embedder = create_embedder(settings.embedding_backend)
                logger.info(f"Using '{_embedder.name}' embedding backend")
    return _embedder
