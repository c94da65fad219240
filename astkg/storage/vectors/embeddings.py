"""
Embedding Service
=================

Singleton wrapper around a sentence-transformers model (E5 family by
default) used to embed both the user query and the class/method texts
that are indexed for similarity search.

Key Features:
- Singleton accessor (model loaded once and reused)
- Lazy loading (model loaded on first use, not on import)
- E5 prefix handling ("query: " for queries, "passage: " for documents)
- Batch encoding
- Async wrappers that run encoding in the default executor

Reference: https://huggingface.co/intfloat/e5-large-v2
"""

import logging
import os
from typing import List, Optional
import asyncio
from threading import Lock

import torch
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "intfloat/e5-large-v2"


class EmbeddingService:
    """
    Singleton service for query/document embeddings.

    Usage:
        service = EmbeddingService.get_instance()

        query_vector = service.encode_query("where are orders validated?")
        doc_vector = service.encode_document("OrderValidator: checks order totals")
        vectors = service.encode_batch(["text1", "text2"], is_query=False)
    """

    _instance: Optional['EmbeddingService'] = None
    _lock: Lock = Lock()

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        batch_size: int = 32,
        normalize_embeddings: bool = True,
        query_prefix: str = "query: ",
        document_prefix: str = "passage: ",
    ):
        """
        Initialize EmbeddingService.

        Args:
            model_name: Sentence-transformers model name
                       (default: EMBEDDING_MODEL env var or e5-large-v2)
            device: 'cpu', 'cuda', or None for auto-detect
            batch_size: Batch size for encoding
            normalize_embeddings: Normalize vectors (cosine similarity)
            query_prefix: Prefix prepended to queries
            document_prefix: Prefix prepended to indexed documents
        """
        self.model_name = model_name or os.getenv("EMBEDDING_MODEL", DEFAULT_MODEL)
        self.device = (
            device or
            os.getenv("EMBEDDING_DEVICE", "cuda" if torch.cuda.is_available() else "cpu")
        )
        self.batch_size = int(os.getenv("EMBEDDING_BATCH_SIZE", str(batch_size)))
        self.normalize_embeddings = (
            os.getenv("EMBEDDING_NORMALIZE", str(normalize_embeddings)).lower() == "true"
        )
        self.query_prefix = query_prefix
        self.document_prefix = document_prefix

        self._model: Optional[SentenceTransformer] = None
        self._model_lock = Lock()

        logger.info(
            "EmbeddingService configured",
            extra={
                "model": self.model_name,
                "device": self.device,
                "batch_size": self.batch_size,
                "normalize": self.normalize_embeddings,
            }
        )

    @classmethod
    def get_instance(cls, **kwargs) -> 'EmbeddingService':
        """
        Get singleton instance of EmbeddingService.

        Double-checked locking; ``kwargs`` only apply to the first call.
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(**kwargs)
        return cls._instance

    def _load_model(self) -> SentenceTransformer:
        """Lazy load the sentence-transformers model."""
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    logger.info(f"Loading embedding model: {self.model_name} on device: {self.device}")
                    try:
                        self._model = SentenceTransformer(
                            self.model_name,
                            device=self.device
                        )
                        logger.info(
                            f"Model loaded. Embedding dimension: "
                            f"{self._model.get_sentence_embedding_dimension()}"
                        )
                    except Exception as e:
                        logger.error(f"Failed to load model: {e}", exc_info=True)
                        raise RuntimeError(f"Failed to load embedding model: {e}")

        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def embedding_dimension(self) -> int:
        model = self._load_model()
        return model.get_sentence_embedding_dimension()

    def _encode(self, text: str) -> List[float]:
        model = self._load_model()
        embedding = model.encode(
            text,
            normalize_embeddings=self.normalize_embeddings,
            convert_to_numpy=True
        )
        return embedding.tolist()

    def encode_query(self, text: str) -> List[float]:
        """Encode a query with the query prefix."""
        logger.debug(f"Encoding query: {text[:100]}...")
        return self._encode(f"{self.query_prefix}{text}")

    def encode_document(self, text: str) -> List[float]:
        """Encode an indexed text with the document prefix."""
        logger.debug(f"Encoding document: {text[:100]}...")
        return self._encode(f"{self.document_prefix}{text}")

    def encode_batch(
        self,
        texts: List[str],
        is_query: bool = False,
        show_progress_bar: bool = False
    ) -> List[List[float]]:
        """
        Encode a batch of texts with the appropriate prefix.

        Args:
            texts: Texts to encode
            is_query: Use the query prefix instead of the document prefix
            show_progress_bar: Show sentence-transformers progress bar

        Returns:
            One embedding vector per input text
        """
        if not texts:
            return []

        model = self._load_model()

        prefix = self.query_prefix if is_query else self.document_prefix
        prefixed_texts = [f"{prefix}{text}" for text in texts]

        logger.info(f"Batch encoding {len(texts)} {'queries' if is_query else 'documents'}")

        embeddings = model.encode(
            prefixed_texts,
            batch_size=self.batch_size,
            normalize_embeddings=self.normalize_embeddings,
            show_progress_bar=show_progress_bar,
            convert_to_numpy=True
        )

        return embeddings.tolist()

    async def encode_query_async(self, text: str) -> List[float]:
        """Run encode_query in the default executor."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.encode_query, text)

    async def encode_document_async(self, text: str) -> List[float]:
        """Run encode_document in the default executor."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.encode_document, text)

    async def encode_batch_async(
        self,
        texts: List[str],
        is_query: bool = False,
        show_progress_bar: bool = False
    ) -> List[List[float]]:
        """Run encode_batch in the default executor."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.encode_batch(texts, is_query, show_progress_bar)
        )

    def __repr__(self) -> str:
        return (
            f"EmbeddingService("
            f"model={self.model_name}, "
            f"device={self.device}, "
            f"loaded={self.is_loaded})"
        )
