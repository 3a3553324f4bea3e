"""
API tests for the lecture chat SSE endpoint, GET /api/chatbot/ask.
"""
import json

import pytest
from fastapi.testclient import TestClient

from lecture_qa.core.security import create_access_token
from lecture_qa.main import app
from lecture_qa.repositories.chat_history_repository import ChatHistoryRepository
from lecture_qa.services.chat_service import ChatService, get_chat_service
from lecture_qa.services.retrieval_service import RetrievalService


def parse_sse(body: str):
    """Split an SSE body into (event, data) tuples; unnamed events get 'message'."""
    events = []
    for block in body.strip().split("\n\n"):
        event, data = "message", None
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = json.loads(line[len("data: "):])
        events.append((event, data))
    return events


@pytest.fixture
def repository(session_factory):
    return ChatHistoryRepository(session_factory=session_factory)


@pytest.fixture
def chat_setup(repository, fakes, match_factory):
    """Wire a ChatService over fakes into the app; returns its collaborators."""
    answers = fakes.Answers(fragments=["Hel", "lo ", "there"])
    index = fakes.Index(filtered=[match_factory(lectureId="L1", text="Heaps are trees.")])
    service = ChatService(
        repository=repository,
        retrieval=RetrievalService(embedder=fakes.Embedder(), index=index),
        answers=answers,
    )
    app.dependency_overrides[get_chat_service] = lambda: service
    yield {"service": service, "answers": answers, "index": index, "repository": repository}
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def token(sample_user_id):
    return create_access_token(sample_user_id)


def ask(client, token=None, headers=None, **params):
    params = {"prompt": "What is a heap?", "lectureId": "L1", **params}
    if token:
        params["token"] = token
    return client.get("/api/chatbot/ask", params=params, headers=headers or {})


class TestChatbotStream:

    def test_streams_chunks_then_done(self, client, chat_setup, token):
        response = ask(client, token)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"

        events = parse_sse(response.text)
        chunks = [data["chunk"] for event, data in events if event == "message"]
        assert "".join(chunks) == "Hello there"
        assert events[-1] == ("done", {})

    def test_wire_format(self, client, chat_setup, token):
        body = ask(client, token).text
        assert body.startswith('data: {"chunk": "Hel"}\n\n')
        assert body.endswith("event: done\ndata: {}\n\n")

    def test_persists_both_messages(self, client, chat_setup, token, sample_user_id):
        ask(client, token)

        conversation = chat_setup["repository"].get_conversation(sample_user_id, "L1")
        assert [(m.type, m.message) for m in conversation.messages] == [
            ("user", "What is a heap?"),
            ("ai", "Hello there"),
        ]

    def test_prompt_contains_history_and_context(self, client, chat_setup, token):
        ask(client, token, prompt="First question about heaps")
        ask(client, token, prompt="Second question")

        prompt, _ = chat_setup["answers"].prompts[1]
        assert "User: First question about heaps" in prompt
        assert "AI: Hello there" in prompt
        assert "User: Second question" in prompt
        assert "Heaps are trees." in prompt

    def test_retrieval_is_filtered_by_lecture(self, client, chat_setup, token):
        ask(client, token)
        assert chat_setup["index"].queries[0] == {"top_k": 5, "filter": {"lectureId": {"$eq": "L1"}}}

    def test_model_is_passed_through(self, client, chat_setup, token):
        ask(client, token, model="gemini-2.0-flash")
        assert chat_setup["answers"].prompts[0][1] == "gemini-2.0-flash"

    def test_error_mid_stream(self, client, chat_setup, token, sample_user_id):
        chat_setup["answers"].fragments = ["partial"]
        chat_setup["answers"].stream_error = RuntimeError("model exploded")

        events = parse_sse(ask(client, token).text)

        assert events[0] == ("message", {"chunk": "partial"})
        assert events[-1] == ("error", {"error": "model exploded"})
        assert all(event != "done" for event, _ in events)
        messages = chat_setup["repository"].get_conversation(sample_user_id, "L1").messages
        assert [m.type for m in messages] == ["user"]


class TestChatbotAuth:

    def test_missing_token(self, client, chat_setup):
        response = ask(client)
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication token is required"

    def test_invalid_token(self, client, chat_setup):
        response = ask(client, token="garbage")
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid JWT token"

    def test_bearer_header_with_quotes(self, client, chat_setup, token):
        response = ask(client, headers={"Authorization": f'Bearer "{token}"'})
        assert response.status_code == 200

    def test_access_token_header(self, client, chat_setup, token):
        response = ask(client, headers={"x-access-token": token})
        assert response.status_code == 200

    def test_missing_lecture_id(self, client, chat_setup, token):
        response = client.get("/api/chatbot/ask", params={"prompt": "hi", "token": token})
        assert response.status_code == 400
        assert response.json()["message"] == "Prompt and lectureId are required"

    def test_missing_prompt(self, client, chat_setup, token):
        response = client.get("/api/chatbot/ask", params={"lectureId": "L1", "token": token})
        assert response.status_code == 400
