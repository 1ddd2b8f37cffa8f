"""Embedding provider implementations."""

from .vertex_provider import VertexEmbeddingProvider

__all__ = ["VertexEmbeddingProvider"]
