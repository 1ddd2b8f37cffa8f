"""
MediaItem entity describing one professional service photo to index.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass
class ImageAnalysis:
    """Tags, description and colors detected in an image."""

    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    dominant_colors: List[str] = field(default_factory=list)


def _required_id(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        text = str(value).strip()
        if text:
            return text
    raise ValueError(f"Manifest entry has no valid {key}: {value!r}")


def _optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str)]


@dataclass
class MediaItem:
    """A service media item as handed to the indexing pipeline."""

    media_id: str
    service_id: str
    provider_id: str
    image: Union[bytes, str, Path]
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    dominant_colors: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate required fields after initialization."""
        if not self.media_id:
            raise ValueError("MediaItem media_id cannot be empty")
        if not self.service_id:
            raise ValueError("MediaItem service_id cannot be empty")
        if not self.provider_id:
            raise ValueError("MediaItem provider_id cannot be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "MediaItem":
        """Create a MediaItem from a manifest entry.

        Ids must be non-blank strings or integers. Relative ``image`` paths
        are resolved against ``base_dir``. Non-string tags and colors are
        dropped.

        Raises:
            ValueError: If an id or the image is missing
        """
        if not isinstance(data, dict):
            raise ValueError(f"Manifest entry is not an object: {data!r}")

        image = data.get("image") or data.get("image_path")
        if not isinstance(image, str) or not image.strip():
            raise ValueError(f"Manifest entry {data.get('media_id')!r} has no image")
        image_path = Path(image)
        if base_dir is not None and not image_path.is_absolute():
            image_path = base_dir / image_path

        return cls(
            media_id=_required_id(data, "media_id"),
            service_id=_required_id(data, "service_id"),
            provider_id=_required_id(data, "provider_id"),
            image=image_path,
            title=_optional_text(data.get("title")),
            description=_optional_text(data.get("description")),
            category=_optional_text(data.get("category")),
            tags=_string_list(data.get("tags")),
            dominant_colors=_string_list(data.get("dominant_colors")),
        )
