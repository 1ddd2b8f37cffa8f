"""Image loading and color utilities.

Images reach the engine as raw bytes, a filesystem path or a PIL image.
They are normalized to encoded bytes once, size-checked, and handed to the
embedding provider unchanged.
"""

import io
from pathlib import Path
from typing import List, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .exceptions import ImageProcessingError
from .logger import get_logger

logger = get_logger(__name__)

ImageRef = Union[bytes, bytearray, str, Path, Image.Image]

DEFAULT_MAX_IMAGE_MB = 10.0
DOMINANT_COLOR_COUNT = 3
_ANALYSIS_SIZE = (128, 128)


def load_image_bytes(image: ImageRef, max_image_mb: float = DEFAULT_MAX_IMAGE_MB) -> bytes:
    """Load an image reference into encoded bytes.

    Args:
        image: Raw bytes, path to an image file, or a PIL image
        max_image_mb: Largest accepted payload in megabytes

    Returns:
        Encoded image bytes (PIL images are re-encoded as PNG)

    Raises:
        ImageProcessingError: If the file is missing, unreadable or too large
    """
    source = None
    if isinstance(image, (bytes, bytearray)):
        data = bytes(image)
    elif isinstance(image, Image.Image):
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        data = buffer.getvalue()
    elif isinstance(image, (str, Path)):
        source = str(image)
        path = Path(image)
        if not path.exists():
            raise ImageProcessingError(f"Image not found: {path}", image_path=source)
        data = path.read_bytes()
    else:
        raise ImageProcessingError(f"Unsupported image reference type: {type(image).__name__}")

    if not data:
        raise ImageProcessingError("Image is empty", image_path=source)

    size_mb = len(data) / (1024 * 1024)
    if size_mb > max_image_mb:
        raise ImageProcessingError(
            f"Image too large: {size_mb:.1f}MB (max {max_image_mb:g}MB)",
            image_path=source,
        )

    return data


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes into an RGB PIL image.

    Raises:
        ImageProcessingError: If the bytes are not a readable image
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Corrupted or invalid image: {e}") from e

    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    """Format an RGB triple as ``#rrggbb``."""
    r, g, b = (max(0, min(255, int(c))) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Parse ``#rgb`` or ``#rrggbb`` into an RGB triple.

    Raises:
        ValueError: If the string is not a hex color
    """
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Not a hex color: {value!r}")
    return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)


def extract_dominant_colors(data: bytes, count: int = DOMINANT_COLOR_COUNT) -> List[str]:
    """Return the most common colors of an image as hex codes.

    The image is downscaled and quantized to a small palette; palette
    entries are ordered by pixel count, most frequent first.

    Args:
        data: Encoded image bytes
        count: Number of colors to return

    Returns:
        Up to ``count`` hex color strings
    """
    if count <= 0:
        return []

    img = open_image(data)
    img.thumbnail(_ANALYSIS_SIZE)
    quantized = img.quantize(colors=max(count * 2, 8))
    palette = quantized.getpalette() or []

    colors = []
    for _, index in sorted(quantized.getcolors() or [], reverse=True):
        rgb = tuple(palette[index * 3:index * 3 + 3])
        if len(rgb) != 3:
            continue
        hex_code = rgb_to_hex(rgb)
        if hex_code not in colors:
            colors.append(hex_code)
        if len(colors) == count:
            break

    logger.debug(f"Dominant colors: {colors}")
    return colors
