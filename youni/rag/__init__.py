from .vector_store import OccupationHit, VectorStore, get_vector_store

__all__ = ["OccupationHit", "VectorStore", "get_vector_store"]
