# Domain Entities Package
"""
Core business entities as dataclasses.
"""

from .embedding import DEFAULT_SLOT_DIMENSIONS, SOURCE_SLOTS, VectorSlot
from .media_item import ImageAnalysis, MediaItem

__all__ = [
    "DEFAULT_SLOT_DIMENSIONS",
    "SOURCE_SLOTS",
    "VectorSlot",
    "ImageAnalysis",
    "MediaItem",
]
