from __future__ import annotations

"""
Text embedding providers.

Every provider maps a batch of texts to a ``(n_texts, dim)`` float32 matrix
and fails closed: whatever goes wrong (network, auth, timeouts, a payload
that does not look like a matrix of the right size, a model that will not
load) surfaces as ``EmbeddingError`` so the ranking layer can degrade.

* ``CohereEmbeddingProvider``: hosted ``/v1/embed`` endpoint over httpx.
* ``SentenceTransformerEmbeddingProvider``: local BGE encoder.
* ``CachedEmbeddingProvider``: content-addressed LRU in front of either.
"""

import hashlib
import os
import threading
from collections import OrderedDict
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple

import httpx
import numpy as np
from loguru import logger

from . import config


class EmbedMode(str, Enum):
    QUERY = "search_query"
    DOCUMENT = "search_document"


class EmbeddingError(RuntimeError):
    """The embedding provider could not produce usable vectors."""


class EmbeddingProvider(Protocol):
    def embed(self, texts: Sequence[str], mode: EmbedMode) -> np.ndarray:
        ...


def _coerce_vectors(raw, n_expected: int) -> np.ndarray:
    """Validate a provider payload as an ``(n_expected, dim)`` float matrix."""
    try:
        arr = np.asarray(raw, dtype="float32")
    except (TypeError, ValueError) as e:
        raise EmbeddingError(f"Embeddings are not a numeric matrix: {e}") from e

    if arr.ndim != 2:
        raise EmbeddingError(f"Embeddings must be 2D (N,D). Got shape {arr.shape}")
    if arr.shape[0] != n_expected:
        raise EmbeddingError(
            f"Expected {n_expected} embeddings, provider returned {arr.shape[0]}"
        )
    if arr.shape[1] == 0:
        raise EmbeddingError("Provider returned zero-dimensional embeddings")
    if not np.all(np.isfinite(arr)):
        raise EmbeddingError("Provider returned non-finite embedding values")
    return arr


# -------------------------------------------------------------------
# Hosted provider
# -------------------------------------------------------------------

class CohereEmbeddingProvider:
    """
    Embeds through Cohere's ``/v1/embed`` endpoint.

    ``client`` may be injected (tests pass one backed by ``httpx.MockTransport``);
    otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.EMBEDDING_MODEL,
        base_url: str = config.COHERE_API_URL,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = config.COHERE_API_KEY if api_key is None else api_key
        self.model = model
        self.url = base_url.rstrip("/") + "/v1/embed"
        self._client = client

    def _post(self, payload: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": config.HTTP_USER_AGENT,
        }
        if self._client is not None:
            return self._client.post(self.url, json=payload, headers=headers)
        with httpx.Client(
            timeout=httpx.Timeout(config.HTTP_READ_TIMEOUT, connect=config.HTTP_CONNECT_TIMEOUT),
        ) as client:
            return client.post(self.url, json=payload, headers=headers)

    def embed(self, texts: Sequence[str], mode: EmbedMode) -> np.ndarray:
        texts = list(texts)
        if not texts:
            return np.zeros((0, 0), dtype="float32")
        if not self.api_key:
            raise EmbeddingError("COHERE_API_KEY is not set")

        payload = {"texts": texts, "model": self.model, "input_type": mode.value}
        try:
            r = self._post(payload)
        except httpx.TimeoutException as e:
            raise EmbeddingError(f"Embedding request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if r.status_code >= 400:
            raise EmbeddingError(f"Embedding provider returned HTTP {r.status_code}: {r.text[:200]}")

        try:
            body = r.json()
        except ValueError as e:
            raise EmbeddingError("Embedding provider returned invalid JSON") from e

        embeddings = body.get("embeddings") if isinstance(body, dict) else None
        # embeddings_by_type responses map type name -> vectors
        if isinstance(embeddings, dict):
            if "float" in embeddings:
                embeddings = embeddings["float"]
            else:
                embeddings = next(iter(embeddings.values()), None)
        if embeddings is None:
            raise EmbeddingError("Embedding response has no 'embeddings' field")

        vectors = _coerce_vectors(embeddings, len(texts))
        logger.info(
            "Embedded {} texts with {} ({}), dim={}",
            len(texts), self.model, mode.value, vectors.shape[1],
        )
        return vectors


# -------------------------------------------------------------------
# Local provider
# -------------------------------------------------------------------

def _ensure_hf_env() -> None:
    """Set HuggingFace cache hints unless the user already has."""
    for key, val in config.HF_ENV_VARS.items():
        if key not in os.environ:
            os.environ[key] = val


class SentenceTransformerEmbeddingProvider:
    """
    Embeds with a local BGE encoder. Query texts get the BGE retrieval
    instruction prepended; documents are encoded as-is.
    """

    def __init__(self, model_name: str = config.LOCAL_ENCODER_MODEL, model=None):
        self.model_name = model_name
        self._model = model

    def _load_encoder(self):
        if self._model is not None:
            return self._model

        _ensure_hf_env()
        logger.info("Loading dense encoder model: {}", self.model_name)
        try:
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(self.model_name)
        except Exception as e:
            raise EmbeddingError(f"Failed to load SentenceTransformer model: {e}") from e
        return self._model

    def embed(self, texts: Sequence[str], mode: EmbedMode) -> np.ndarray:
        texts = list(texts)
        if not texts:
            return np.zeros((0, 0), dtype="float32")

        model = self._load_encoder()
        if mode is EmbedMode.QUERY:
            texts = [config.BGE_QUERY_INSTRUCTION + t for t in texts]
        try:
            raw = model.encode(
                texts,
                batch_size=64,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as e:
            raise EmbeddingError(f"Failed to compute embeddings: {e}") from e
        return _coerce_vectors(raw, len(texts))


# -------------------------------------------------------------------
# Content-addressed cache
# -------------------------------------------------------------------

class CachedEmbeddingProvider:
    """
    LRU cache keyed on ``(mode, sha256(text))`` in front of another provider.

    A changed profile text hashes to a new key, so stale vectors are never
    served; they simply age out.
    """

    def __init__(self, inner: EmbeddingProvider, maxsize: int = 10_000):
        self.inner = inner
        self.maxsize = maxsize
        self._cache: "OrderedDict[Tuple[str, str], np.ndarray]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _key(text: str, mode: EmbedMode) -> Tuple[str, str]:
        return mode.value, hashlib.sha256(text.encode("utf-8")).hexdigest()

    def embed(self, texts: Sequence[str], mode: EmbedMode) -> np.ndarray:
        texts = list(texts)
        if not texts:
            return np.zeros((0, 0), dtype="float32")

        keys = [self._key(t, mode) for t in texts]
        found: List[Optional[np.ndarray]] = []
        with self._lock:
            for k in keys:
                vec = self._cache.get(k)
                if vec is not None:
                    self._cache.move_to_end(k)
                found.append(vec)
            missing = [i for i, vec in enumerate(found) if vec is None]
            self.hits += len(texts) - len(missing)
            self.misses += len(missing)

        if missing:
            fresh = self.inner.embed([texts[i] for i in missing], mode)
            with self._lock:
                for i, row in zip(missing, fresh):
                    # own copy, so a cached row never pins the whole batch
                    vec = np.array(row, copy=True)
                    found[i] = vec
                    self._cache[keys[i]] = vec
                    self._cache.move_to_end(keys[i])
                while len(self._cache) > self.maxsize:
                    self._cache.popitem(last=False)

        try:
            stacked = np.stack(found)
        except ValueError as e:
            raise EmbeddingError(f"Cached and fresh embeddings disagree in shape: {e}") from e
        return _coerce_vectors(stacked, len(texts))


def build_embedding_provider(
    name: str = config.EMBEDDING_PROVIDER,
    cache_size: int = config.EMBEDDING_CACHE_SIZE,
) -> EmbeddingProvider:
    """Build the configured provider, wrapped in a cache when enabled."""
    if name == "cohere":
        provider: EmbeddingProvider = CohereEmbeddingProvider()
    elif name in ("sentence-transformers", "local"):
        provider = SentenceTransformerEmbeddingProvider()
    else:
        raise ValueError(f"Unknown embedding provider: {name!r}")

    if cache_size > 0:
        logger.info("Embedding cache enabled (maxsize={})", cache_size)
        provider = CachedEmbeddingProvider(provider, maxsize=cache_size)
    return provider
