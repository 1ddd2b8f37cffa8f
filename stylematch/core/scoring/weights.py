"""
Search-mode weight profiles for multi-vector matching.

A search mode biases which vector slots dominate the final score. Five
canonical profiles are defined; ad hoc profiles can be built from any
mapping and are renormalized to sum to 1.0.

Example:
    >>> from stylematch.core.scoring.weights import resolve_weights
    >>> profile = resolve_weights("visual")
    >>> profile.weight(VectorSlot.VISUAL)
    0.5
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union

from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.exceptions import ConfigValidationError
from stylematch.utils.logger import get_logger

logger = get_logger(__name__)

_SUM_TOLERANCE = 1e-9


class SearchMode(str, Enum):
    """Named weighting strategies."""

    BALANCED = "balanced"
    VISUAL = "visual"
    STYLE = "style"
    SEMANTIC = "semantic"
    COLOR = "color"

    @classmethod
    def parse(cls, value: Union[str, "SearchMode", None]) -> Optional["SearchMode"]:
        """Parse a mode token case-insensitively; None when unrecognized."""
        if isinstance(value, SearchMode):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class WeightProfile:
    """
    Immutable slot -> weight mapping.

    Weights are non-negative and sum to 1.0. One profile is shared
    read-only by every candidate scored in a request.

    Attributes:
        visual: Weight of the raw image vector.
        style: Weight of the image + style context vector.
        semantic: Weight of the text-only vector.
        color: Weight of the color/mood vector.
        hybrid: Weight of the visual/style mean vector.
    """

    visual: float
    style: float
    semantic: float
    color: float
    hybrid: float

    def __post_init__(self) -> None:
        """Validate that weights are valid."""
        for slot in VectorSlot:
            value = getattr(self, slot.value)
            if not math.isfinite(value) or value < 0:
                raise ConfigValidationError(
                    f"{slot.value} weight must be a non-negative number, got {value}",
                    field=slot.value,
                    value=value,
                )
        if abs(self.total - 1.0) > 1e-6:
            raise ConfigValidationError(
                f"Weights must sum to 1.0, got {self.total:.6f}",
                field="weights",
                value=self.as_dict(),
            )

    @classmethod
    def from_mapping(cls, weights: Mapping[Union[VectorSlot, str], float]) -> "WeightProfile":
        """
        Build a profile from an ad hoc mapping, renormalizing to 1.0.

        Missing slots get weight 0.

        Raises:
            ConfigValidationError: If a weight is negative, a slot name is
                unknown, or every weight is zero.

        Example:
            >>> WeightProfile.from_mapping({"visual": 2, "hybrid": 2}).visual
            0.5
        """
        raw: Dict[VectorSlot, float] = {slot: 0.0 for slot in VectorSlot}
        for key, value in weights.items():
            try:
                slot = VectorSlot(key)
            except ValueError as e:
                raise ConfigValidationError(f"Unknown vector slot: {key!r}", field="weights") from e
            value = float(value)
            if not math.isfinite(value) or value < 0:
                raise ConfigValidationError(
                    f"{slot.value} weight must be a non-negative number, got {value}",
                    field=slot.value,
                    value=value,
                )
            raw[slot] = value

        total = sum(raw.values())
        if total <= _SUM_TOLERANCE:
            raise ConfigValidationError(
                "Weight profile must have a positive total",
                field="weights",
                value={slot.value: w for slot, w in raw.items()},
            )

        return cls(**{slot.value: w / total for slot, w in raw.items()})

    def weight(self, slot: VectorSlot) -> float:
        """Return the weight for ``slot``."""
        return getattr(self, VectorSlot(slot).value)

    @property
    def total(self) -> float:
        return math.fsum(getattr(self, slot.value) for slot in VectorSlot)

    def as_dict(self) -> Dict[str, float]:
        return {slot.value: getattr(self, slot.value) for slot in VectorSlot}

    def to_tuple(self) -> Tuple[float, float, float, float, float]:
        """Return weights in slot order (visual, style, semantic, color, hybrid)."""
        return (self.visual, self.style, self.semantic, self.color, self.hybrid)


CANONICAL_PROFILES: Dict[SearchMode, WeightProfile] = {
    SearchMode.BALANCED: WeightProfile(visual=0.20, style=0.20, semantic=0.10, color=0.10, hybrid=0.40),
    SearchMode.VISUAL: WeightProfile(visual=0.50, style=0.20, semantic=0.05, color=0.05, hybrid=0.20),
    SearchMode.STYLE: WeightProfile(visual=0.15, style=0.50, semantic=0.10, color=0.05, hybrid=0.20),
    SearchMode.SEMANTIC: WeightProfile(visual=0.10, style=0.10, semantic=0.55, color=0.05, hybrid=0.20),
    SearchMode.COLOR: WeightProfile(visual=0.10, style=0.10, semantic=0.05, color=0.55, hybrid=0.20),
}


def resolve_mode(mode: Union[str, SearchMode, None]) -> SearchMode:
    """Resolve a mode token, falling back to balanced when absent or unknown."""
    parsed = SearchMode.parse(mode)
    if parsed is None:
        if mode is not None:
            logger.warning(f"Unknown search mode {mode!r}, falling back to balanced")
        return SearchMode.BALANCED
    return parsed


def resolve_weights(mode: Union[str, SearchMode, None] = None) -> WeightProfile:
    """
    Translate a search mode into its canonical weight profile.

    Args:
        mode: One of balanced, visual, style, semantic, color. Case is
            ignored; None or an unknown token resolves to balanced.

    Returns:
        The shared, immutable WeightProfile for that mode.
    """
    return CANONICAL_PROFILES[resolve_mode(mode)]
