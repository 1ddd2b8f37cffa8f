# Domain Interfaces Package
"""
Abstract base classes defining contracts for infrastructure implementations.
"""

from .provider_interface import EmbeddingProvider, ImageAnalyzer
from .repository_interface import VectorRecordStore

__all__ = ["EmbeddingProvider", "ImageAnalyzer", "VectorRecordStore"]
