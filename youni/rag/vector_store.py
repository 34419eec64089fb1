"""
youni/rag/vector_store.py

Qdrant-backed semantic search index over O*NET occupations.

Responsibilities
----------------
1. Connects to Qdrant (host/port read from .env).
2. Embeds occupations (title + description) with
   intfloat/multilingual-e5-large and upserts them into the
   "onet_occupations" collection.
3. Exposes ``search(query, top_k)`` → list[OccupationHit] sorted by cosine
   similarity, with confidence scores in [0, 1].

Unlike a static dataset, the occupation catalogue lives in the database,
so the index is (re)built explicitly by the seed step:

    python -m youni.database.seed --reindex

Embedding notes
---------------
- Model  : intfloat/multilingual-e5-large  (1024-dim)
- Prefix : "passage: " when indexing, "query: " when searching  (E5 convention)
- Vectors are L2-normalised so cosine similarity == dot product.

Usage
-----
from youni.rag import get_vector_store

vs   = get_vector_store()
hits = vs.search("someone who builds bridges")
for h in hits:
    print(h.code, h.title, h.confidence)
"""

from __future__ import annotations

import hashlib
import os
from typing import Iterable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams
from sentence_transformers import SentenceTransformer

load_dotenv()


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COLLECTION_NAME = "onet_occupations"
MODEL_NAME      = "intfloat/multilingual-e5-large"
VECTOR_DIM      = 1024
TOP_K_DEFAULT   = 10
_BATCH_SIZE     = 64   # embedding and upsert batch size


# ---------------------------------------------------------------------------
# Output model
# ---------------------------------------------------------------------------

class OccupationHit(BaseModel):
    """A single occupation returned by semantic search."""

    code: str
    title: str
    description: str = ""
    confidence: float = Field(ge=0.0, le=1.0)  # cosine similarity [0, 1]


# ---------------------------------------------------------------------------
# VectorStore
# ---------------------------------------------------------------------------

class VectorStore:
    """
    Manages occupation embeddings in Qdrant.

    Construction loads the embedding model, connects to Qdrant and makes
    sure the collection exists.  Populating it is a separate step
    (``index_occupations``) because the source rows live in the database.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        recreate: bool = False,
    ) -> None:
        _host = host or os.getenv("QDRANT_HOST", "localhost")
        _port = int(port or os.getenv("QDRANT_PORT", 6333))

        self._client = QdrantClient(host=_host, port=_port)
        self._model  = SentenceTransformer(MODEL_NAME)

        self._ensure_collection(recreate=recreate)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search(self, query: str, top_k: int = TOP_K_DEFAULT) -> list[OccupationHit]:
        """
        Find the top-k occupations semantically closest to *query*.

        Returns
        -------
        list[OccupationHit]
            Sorted by confidence descending.
        """
        if not query.strip():
            return []

        query_vec = self._embed([query], is_query=True)[0]

        response = self._client.query_points(
            collection_name=COLLECTION_NAME,
            query=query_vec,
            limit=top_k,
            with_payload=True,
        )

        results: list[OccupationHit] = []
        for point in response.points:
            p = point.payload or {}
            confidence = round(max(0.0, min(1.0, float(point.score))), 4)
            results.append(OccupationHit(
                code=p["code"],
                title=p["title"],
                description=p.get("description") or "",
                confidence=confidence,
            ))

        return results

    def index_occupations(self, occupations: Iterable) -> int:
        """
        Embed and upsert occupations (anything with ``code``, ``title`` and
        ``description`` attributes).  Returns the number of points written.
        """
        rows = [o for o in occupations if getattr(o, "code", None) and getattr(o, "title", None)]
        if not rows:
            return 0

        texts   = [f"{o.title} {o.description or ''}" for o in rows]
        vectors = self._embed(texts, is_query=False)

        points = [
            PointStruct(
                id=_stable_id(o.code),
                vector=vec,
                payload={
                    "code":        o.code,
                    "title":       o.title,
                    "description": o.description or "",
                },
            )
            for o, vec in zip(rows, vectors)
        ]

        for i in range(0, len(points), _BATCH_SIZE):
            self._client.upsert(
                collection_name=COLLECTION_NAME,
                points=points[i : i + _BATCH_SIZE],
            )
        return len(points)

    def count(self) -> int:
        return self._client.count(collection_name=COLLECTION_NAME, exact=True).count

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    def _embed(self, texts: list[str], is_query: bool = False) -> list[list[float]]:
        """Encode *texts* with the E5 "query: " / "passage: " prefixes."""
        prefix   = "query: " if is_query else "passage: "
        prefixed = [f"{prefix}{t.strip()}" for t in texts]
        vectors  = self._model.encode(
            prefixed,
            normalize_embeddings=True,
            show_progress_bar=False,
            batch_size=_BATCH_SIZE,
        )
        return vectors.tolist()

    # ------------------------------------------------------------------
    # Collection management
    # ------------------------------------------------------------------

    def _ensure_collection(self, recreate: bool = False) -> None:
        existing = {c.name for c in self._client.get_collections().collections}

        if COLLECTION_NAME in existing:
            if recreate:
                self._client.delete_collection(COLLECTION_NAME)
            else:
                return

        self._client.create_collection(
            collection_name=COLLECTION_NAME,
            vectors_config=VectorParams(size=VECTOR_DIM, distance=Distance.COSINE),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _stable_id(code: str) -> int:
    """
    Convert an O*NET code to a stable integer point ID.

    Uses the first 15 hex digits of the SHA-256 hash, giving a 60-bit
    non-negative integer that fits in Qdrant's uint64 ID space.
    """
    return int(hashlib.sha256(code.encode()).hexdigest()[:15], 16)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_instance: Optional[VectorStore] = None


def get_vector_store(recreate: bool = False) -> VectorStore:
    """
    Return the module-level VectorStore singleton.

    Pass ``recreate=True`` to drop the collection before the next indexing run.
    """
    global _instance
    if _instance is None or recreate:
        _instance = VectorStore(recreate=recreate)
    return _instance
