"""Metadata catalog clients."""

from mediamatch.catalog.tmdb import TmdbCatalog, candidate_from_payload

__all__ = ["TmdbCatalog", "candidate_from_payload"]
