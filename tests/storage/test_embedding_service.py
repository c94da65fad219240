"""
Tests for EmbeddingService

The sentence-transformers model is patched out; these tests cover
prefixing, batching, lazy loading and the singleton accessor.
"""

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

from astkg.storage.vectors.embeddings import EmbeddingService


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("EMBEDDING_MODEL", "EMBEDDING_DEVICE", "EMBEDDING_BATCH_SIZE", "EMBEDDING_NORMALIZE"):
        monkeypatch.delenv(key, raising=False)
    EmbeddingService._instance = None
    yield
    EmbeddingService._instance = None


@pytest.fixture
def fake_model():
    model = MagicMock()
    model.get_sentence_embedding_dimension.return_value = 4

    def encode(texts, **kwargs):
        if isinstance(texts, str):
            return np.array([0.1, 0.2, 0.3, 0.4])
        return np.array([[0.1, 0.2, 0.3, 0.4] for _ in texts])

    model.encode.side_effect = encode
    return model


@pytest.fixture
def service(fake_model):
    with patch("astkg.storage.vectors.embeddings.SentenceTransformer", return_value=fake_model) as factory:
        svc = EmbeddingService(model_name="test-model", device="cpu", batch_size=8)
        svc.factory = factory
        yield svc


# ============================================================================
# Tests
# ============================================================================

class TestEmbeddingService:
    """Test encoding behaviour."""

    def test_lazy_loading(self, service):
        assert not service.is_loaded
        service.encode_query("orders")
        assert service.is_loaded
        service.factory.assert_called_once_with("test-model", device="cpu")

    def test_query_prefix(self, service, fake_model):
        vector = service.encode_query("where are refunds validated?")

        assert vector == [0.1, 0.2, 0.3, 0.4]
        assert fake_model.encode.call_args.args[0] == "query: where are refunds validated?"

    def test_document_prefix(self, service, fake_model):
        service.encode_document("OrderService: places orders")
        assert fake_model.encode.call_args.args[0] == "passage: OrderService: places orders"

    def test_batch(self, service, fake_model):
        vectors = service.encode_batch(["a", "b"], is_query=False)

        assert len(vectors) == 2
        assert fake_model.encode.call_args.args[0] == ["passage: a", "passage: b"]
        assert fake_model.encode.call_args.kwargs["batch_size"] == 8

    def test_batch_as_queries(self, service, fake_model):
        service.encode_batch(["a"], is_query=True)
        assert fake_model.encode.call_args.args[0] == ["query: a"]

    def test_empty_batch(self, service, fake_model):
        assert service.encode_batch([]) == []
        fake_model.encode.assert_not_called()

    def test_embedding_dimension(self, service):
        assert service.embedding_dimension == 4

    def test_load_failure(self):
        with patch("astkg.storage.vectors.embeddings.SentenceTransformer", side_effect=OSError("no such model")):
            svc = EmbeddingService(model_name="missing", device="cpu")
            with pytest.raises(RuntimeError, match="Failed to load embedding model"):
                svc.encode_query("x")

    @pytest.mark.asyncio
    async def test_async_wrappers(self, service):
        assert await service.encode_query_async("orders") == [0.1, 0.2, 0.3, 0.4]
        assert len(await service.encode_batch_async(["a", "b", "c"])) == 3


class TestSingleton:
    """Test get_instance."""

    def test_same_instance(self):
        first = EmbeddingService.get_instance(model_name="test-model", device="cpu")
        second = EmbeddingService.get_instance(model_name="ignored", device="cpu")
        assert first is second
        assert second.model_name == "test-model"

    def test_env_configuration(self, monkeypatch):
        monkeypatch.setenv("EMBEDDING_MODEL", "intfloat/e5-small-v2")
        monkeypatch.setenv("EMBEDDING_BATCH_SIZE", "16")
        svc = EmbeddingService(device="cpu")
        assert svc.model_name == "intfloat/e5-small-v2"
        assert svc.batch_size == 16
