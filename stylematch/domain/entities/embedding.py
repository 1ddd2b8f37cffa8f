"""
Vector slot definitions for multi-vector embeddings.
"""

from enum import Enum
from typing import Dict, Tuple


class VectorSlot(str, Enum):
    """The five embedding slots stored per media item."""

    VISUAL = "visual"
    STYLE = "style"
    SEMANTIC = "semantic"
    COLOR = "color"
    HYBRID = "hybrid"

    @property
    def is_image_space(self) -> bool:
        """True for slots produced in the image/multimodal embedding space."""
        return self in (VectorSlot.VISUAL, VectorSlot.STYLE, VectorSlot.HYBRID)


# Slots the hybrid vector is derived from.
SOURCE_SLOTS: Tuple[VectorSlot, ...] = (VectorSlot.VISUAL, VectorSlot.STYLE)

DEFAULT_SLOT_DIMENSIONS: Dict[VectorSlot, int] = {
    VectorSlot.VISUAL: 1408,
    VectorSlot.STYLE: 1408,
    VectorSlot.SEMANTIC: 512,
    VectorSlot.COLOR: 512,
    VectorSlot.HYBRID: 1408,
}


def slot_dimensions(image_dimension: int = 1408, text_dimension: int = 512) -> Dict[VectorSlot, int]:
    """Build the slot -> dimension table for configured provider dimensions."""
    return {
        slot: image_dimension if slot.is_image_space else text_dimension
        for slot in VectorSlot
    }
