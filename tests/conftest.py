"""
Pytest Configuration and Fixtures for Lecture QA Service Tests
"""
import io
import os

# Settings are read once at import time; pin the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("OCR_PAGE_DELAY_SECONDS", "0")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("PINECONE_API_KEY", "test-pinecone-key")

import pytest
from hypothesis import settings
from PyPDF2 import PdfWriter
from sqlalchemy.orm import sessionmaker

from lecture_qa.core.database import build_engine
from lecture_qa.engine.vector_index import RetrievalMatch
from lecture_qa.models.database import Base

# Configure Hypothesis profiles
settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("dev", max_examples=50, deadline=5000)
settings.load_profile("dev")


# =============================================================================
# Fakes for upstream collaborators
# =============================================================================

class FakeEmbedder:
    """Returns a fixed vector, or raises when ``error`` is set."""

    name = "fake"

    def __init__(self, vector=None, error=None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls = []

    async def embed_query(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.vector


class FakeIndex:
    """
    Serves canned matches.

    ``filtered`` answers queries with a filter, ``broad`` answers unfiltered
    ones. ``filtered_error`` / ``broad_error`` make the query raise instead.
    """

    def __init__(self, filtered=None, broad=None, filtered_error=None, broad_error=None):
        self.filtered = filtered or []
        self.broad = broad or []
        self.filtered_error = filtered_error
        self.broad_error = broad_error
        self.queries = []

    async def query(self, vector, top_k, filter=None):
        self.queries.append({"top_k": top_k, "filter": filter})
        if filter:
            if self.filtered_error:
                raise self.filtered_error
            return list(self.filtered[:top_k])
        if self.broad_error:
            raise self.broad_error
        return list(self.broad[:top_k])


class FakeAnswers:
    """Answer service stand-in for batch and streaming calls."""

    def __init__(self, answer="A detailed answer.", fragments=None, stream_error=None):
        self.answer = answer
        self.fragments = fragments if fragments is not None else ["Hello", " world"]
        self.stream_error = stream_error
        self.questions = []
        self.prompts = []

    async def generate_answer(self, question, context="", model=None):
        self.questions.append((question, context))
        return self.answer

    async def stream_answer(self, prompt, model=None):
        self.prompts.append((prompt, model))
        for fragment in self.fragments:
            yield fragment
        if self.stream_error:
            raise self.stream_error


def make_match(id="L1_chunk_0", score=0.9, **metadata):
    """Build a RetrievalMatch with metadata keyword arguments."""
    return RetrievalMatch(id=id, score=score, metadata=metadata)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_answers():
    return FakeAnswers()


@pytest.fixture
def match_factory():
    return make_match


@pytest.fixture
def fakes():
    """Namespace with the fake classes, for tests that need custom instances."""
    class _Fakes:
        Embedder = FakeEmbedder
        Index = FakeIndex
        Answers = FakeAnswers
    return _Fakes


# =============================================================================
# Data fixtures
# =============================================================================

def make_pdf(pages: int) -> bytes:
    """A blank PDF with the given number of pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def sample_user_id():
    """Sample user ID for testing"""
    return "64f1c2aa9e1b2c3d4e5f6789"


@pytest.fixture
def sample_exam_text():
    """OCR output of a short exam paper"""
    return (
        "UNIVERSITY EXAMINATION 2024\n"
        "Data Structures and Algorithms\n"
        "1. What is a stack and how does push work? (2 marks)\n"
        "2. Explain how a queue differs from a stack. (CO2) (BL3)\n"
        "Q3: Describe the insertion procedure for a binary search tree\n"
        "including the handling of duplicate keys. [5 marks]\n"
    )
