# Use Cases Package
"""
Application use cases (business logic).

Use cases orchestrate the flow of data between the embedding provider,
the multi-vector generator, the matcher and the record store.
"""

from stylematch.core.use_cases.analyze_inspiration import (
    AnalyzeInspirationUseCase,
    describe_image,
)
from stylematch.core.use_cases.index_media import IndexMediaUseCase
from stylematch.core.use_cases.match_inspiration import MatchInspirationUseCase

__all__ = [
    "AnalyzeInspirationUseCase",
    "IndexMediaUseCase",
    "MatchInspirationUseCase",
    "describe_image",
]
