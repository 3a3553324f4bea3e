"""
Unit tests for embedding helpers and backend selection.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import numpy as np
import pytest

from lecture_qa.engine import embeddings as embeddings_module
from lecture_qa.engine.embeddings import (
    GeminiQueryEmbedder,
    LocalE5Embedder,
    PineconeInferenceEmbedder,
    create_embedder,
    extract_embedding_vector,
    get_embedder,
    l2_normalize,
)


class TestL2Normalize:

    def test_unit_length(self):
        vector = l2_normalize([3.0, 4.0])
        assert vector == pytest.approx([0.6, 0.8])
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    def test_zero_vector_unchanged(self):
        assert l2_normalize([0.0, 0.0]) == [0.0, 0.0]


class TestExtractEmbeddingVector:

    def test_sdk_style_object(self):
        response = SimpleNamespace(data=[SimpleNamespace(values=[0.1, 0.2])])
        assert extract_embedding_vector(response) == [0.1, 0.2]

    def test_dict_with_data(self):
        assert extract_embedding_vector({"data": [{"values": [1, 2, 3]}]}) == [1.0, 2.0, 3.0]

    def test_embedding_and_vector_keys(self):
        assert extract_embedding_vector([{"embedding": [0.5]}]) == [0.5]
        assert extract_embedding_vector({"data": [{"vector": [0.25, 0.75]}]}) == [0.25, 0.75]

    def test_first_numeric_field(self):
        item = {"vector_type": "dense", "dense_values": [0.3, 0.4]}
        assert extract_embedding_vector({"data": [item]}) == [0.3, 0.4]

    def test_bare_vector(self):
        assert extract_embedding_vector([0.1, 0.9]) == [0.1, 0.9]

    def test_missing_vector_raises(self):
        with pytest.raises(ValueError):
            extract_embedding_vector({"data": [{"usage": "none"}]})


class TestPineconeInferenceEmbedder:

    @pytest.mark.asyncio
    async def test_uses_query_input_type(self):
        calls = {}

        def embed(model, inputs, parameters):
            calls.update(model=model, inputs=inputs, parameters=parameters)
            return {"data": [{"values": [0.1, 0.2]}]}

        client = SimpleNamespace(inference=SimpleNamespace(embed=embed))
        embedder = PineconeInferenceEmbedder(client=client, model_name="multilingual-e5-large")

        vector = await embedder.embed_query("what is a heap")

        assert vector == [0.1, 0.2]
        assert calls["inputs"] == ["what is a heap"]
        assert calls["parameters"]["input_type"] == "query"


class TestLocalE5Embedder:

    @pytest.mark.asyncio
    async def test_prefixes_query_and_normalizes(self, monkeypatch):
        encoded = []

        class FakeModel:
            def encode(self, text, normalize_embeddings=False):
                encoded.append(text)
                return np.array([3.0, 4.0])

        monkeypatch.setattr(
            "lecture_qa.engine.embeddings._load_local_model", lambda name: FakeModel()
        )

        vector = await LocalE5Embedder(model_name="fake-e5").embed_query("define entropy")

        assert encoded == ["query: define entropy"]
        assert vector == pytest.approx([0.6, 0.8])


class TestEmbeddingSingletons:

    def test_model_is_loaded_once_across_threads(self, monkeypatch):
        constructed = []

        class CountingModel:
            def __init__(self, name):
                time.sleep(0.05)
                constructed.append(name)

        monkeypatch.setattr("sentence_transformers.SentenceTransformer", CountingModel)
        monkeypatch.setattr(embeddings_module, "_local_models", {})

        barrier = threading.Barrier(8)

        def load():
            barrier.wait()
            return embeddings_module._load_local_model("fake-e5")

        with ThreadPoolExecutor(max_workers=8) as pool:
            models = list(pool.map(lambda _: load(), range(8)))

        assert constructed == ["fake-e5"]
        assert all(model is models[0] for model in models)

    def test_each_model_name_loads_separately(self, monkeypatch):
        monkeypatch.setattr("sentence_transformers.SentenceTransformer", lambda name: SimpleNamespace(name=name))
        monkeypatch.setattr(embeddings_module, "_local_models", {})

        first = embeddings_module._load_local_model("model-a")
        second = embeddings_module._load_local_model("model-b")

        assert first is not second
        assert embeddings_module._load_local_model("model-a") is first

    def test_get_embedder_returns_one_instance(self, monkeypatch):
        created = []

        class CountingEmbedder(LocalE5Embedder):
            def __init__(self):
                created.append(self)
                super().__init__(model_name="fake-e5")

        monkeypatch.setitem(embeddings_module._BACKENDS, "local", CountingEmbedder)
        monkeypatch.setattr(embeddings_module.settings, "embedding_backend", "local")
        monkeypatch.setattr(embeddings_module, "_embedder", None)

        with ThreadPoolExecutor(max_workers=4) as pool:
            embedders = list(pool.map(lambda _: get_embedder(), range(4)))

        assert len(created) == 1
        assert all(e is embedders[0] for e in embedders)
        assert get_embedder() is embedders[0]


def test_create_embedder_by_name():
    assert isinstance(create_embedder("local"), LocalE5Embedder)
    assert isinstance(create_embedder("pinecone"), PineconeInferenceEmbedder)
    assert isinstance(create_embedder("gemini"), GeminiQueryEmbedder)


def test_create_embedder_unknown_backend():
    with pytest.raises(ValueError):
        create_embedder("word2vec")
