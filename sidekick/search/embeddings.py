# Query embedders for the knowledge-base vector search.
# Vectors are L2-normalized so FAISS inner product equals cosine similarity.

from __future__ import annotations

import asyncio
import os
from typing import Optional

import faiss
import httpx
import numpy as np

from sidekick.errors import ConfigurationMissing


def _normalize(values) -> np.ndarray:
    vec = np.asarray(values, dtype="float32")
    faiss.normalize_L2(vec.reshape(1, -1))
    return vec


class OpenAIEmbedder:
    def __init__(self, api_key: Optional[str], model: str = "text-embedding-3-small"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise ConfigurationMissing("OPENAI_API_KEY", "required for document search embeddings")
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def embed(self, text: str) -> np.ndarray:
        resp = await self._get_client().embeddings.create(model=self.model, input=text)
        return _normalize(resp.data[0].embedding)


class OllamaEmbedder:
    def __init__(self, host: str = "http://localhost:11434", model: str = "bge-m3:latest", timeout: float = 30.0):
        self.host = host.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def embed(self, text: str) -> np.ndarray:
        url = f"{self.host}/api/embeddings"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(url, json={"model": self.model, "prompt": text})
            resp.raise_for_status()
            return _normalize(resp.json()["embedding"])


class SentenceTransformerEmbedder:
    """Local SBERT model; loaded on first query."""

    def __init__(self, model: str = "BAAI/bge-small-en-v1.5", device: str = "cpu"):
        self.model = model
        self.device = device
        self._model = None

    def _get_model(self):
        if self._model is None:
            os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")
            from sentence_transformers import SentenceTransformer  # heavy import delayed

            self._model = SentenceTransformer(self.model, device=self.device)
        return self._model

    def _encode(self, text: str) -> np.ndarray:
        vec = self._get_model().encode([text], convert_to_numpy=True, normalize_embeddings=False)
        return _normalize(vec[0])

    async def embed(self, text: str) -> np.ndarray:
        return await asyncio.to_thread(self._encode, text)


def build_embedder(settings):
    provider = settings.EMBED_PROVIDER.lower()
    if provider == "ollama":
        return OllamaEmbedder(host=settings.OLLAMA_HOST, model=settings.EMBED_MODEL)
    if provider == "openai":
        return OpenAIEmbedder(api_key=settings.OPENAI_API_KEY, model=settings.EMBED_MODEL)
    if provider == "local":
        return SentenceTransformerEmbedder(model=settings.EMBED_MODEL, device=settings.EMBED_DEVICE)
    raise ValueError(f"Unknown EMBED_PROVIDER '{settings.EMBED_PROVIDER}'")
