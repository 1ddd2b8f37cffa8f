"""
Context fusion: the text blobs fed to the embedding provider.

Three texts are built per image:

- the style context, paired with the image for the multimodal ``style`` vector
- the semantic text, embedded alone for the ``semantic`` vector
- the color text, embedded alone for the ``color`` vector

Every builder here is a pure function over plain values and never raises;
missing inputs simply drop their part of the text.

Example:
    >>> build_style_context("hair", ["curly", "fade"], title="Curly fade")
    'Curly fade. hair service. keywords: hairstyle, haircut, hair styling, hair texture. features: curly, fade. similar to defined curls, not straight'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from stylematch.utils.config import ContextConfig
from stylematch.utils.image_utils import hex_to_rgb

PART_SEPARATOR = ". "
DEFAULT_MAX_TEXT_CHARS = 8000
DEFAULT_MAX_CONTEXT_TAGS = 20
DEFAULT_SEMANTIC_TOP_N = 15


class StyleContrast(NamedTuple):
    """A style cue, its opposite and a phrase describing similar work."""

    style: str
    opposite: str
    similar: str


# ============================================
# Category vocabulary
# ============================================

CATEGORY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "hair": ("hairstyle", "haircut", "hair styling", "hair texture"),
    "barber": ("barbering", "mens haircut", "fade", "beard grooming"),
    "braids": ("protective style", "braiding", "box braids", "cornrows"),
    "makeup": ("makeup look", "cosmetics", "face makeup", "beauty makeup"),
    "nails": ("manicure", "nail art", "nail design", "nail polish"),
    "lashes": ("lash extensions", "eyelashes", "lash lift", "lash volume"),
    "brows": ("eyebrows", "brow shaping", "brow tint", "microblading"),
}

# First entry whose style matches a tag wins; otherwise the first entry is used.
CONTRAST_TABLE: Dict[str, Tuple[StyleContrast, ...]] = {
    "hair": (
        StyleContrast("curly", "straight", "defined curls"),
        StyleContrast("straight", "curly", "sleek straight hair"),
        StyleContrast("locs", "loose hair", "well-kept locs"),
        StyleContrast("afro", "sleek", "natural afro volume"),
        StyleContrast("updo", "loose waves", "elegant updo"),
        StyleContrast("bob", "long layers", "short bob cut"),
        StyleContrast("balayage", "solid color", "hand-painted balayage"),
    ),
    "barber": (
        StyleContrast("fade", "uniform length", "clean skin fade"),
        StyleContrast("beard", "clean shaven", "groomed beard"),
        StyleContrast("buzz", "long hair", "short buzz cut"),
        StyleContrast("waves", "flat top", "360 waves"),
    ),
    "braids": (
        StyleContrast("box braids", "cornrows", "neat box braids"),
        StyleContrast("knotless", "traditional box braids", "knotless braids"),
        StyleContrast("cornrows", "box braids", "straight-back cornrows"),
        StyleContrast("twists", "braids", "two-strand twists"),
    ),
    "makeup": (
        StyleContrast("natural", "dramatic", "soft natural glam"),
        StyleContrast("glam", "no-makeup look", "full glam"),
        StyleContrast("smokey", "natural eye", "smokey eye"),
        StyleContrast("bridal", "editorial", "bridal makeup"),
        StyleContrast("matte", "dewy", "matte finish"),
        StyleContrast("dewy", "matte", "dewy glow"),
    ),
    "nails": (
        StyleContrast("acrylic", "natural nails", "acrylic extensions"),
        StyleContrast("gel", "acrylic", "gel manicure"),
        StyleContrast("french", "bold color", "classic french tips"),
        StyleContrast("nail art", "plain polish", "detailed nail art"),
        StyleContrast("almond", "square", "almond shaped nails"),
        StyleContrast("coffin", "round", "coffin shaped nails"),
    ),
    "lashes": (
        StyleContrast("classic", "mega volume", "classic lashes"),
        StyleContrast("volume", "classic", "volume lashes"),
        StyleContrast("hybrid", "classic", "hybrid lashes"),
        StyleContrast("wispy", "uniform", "wispy lashes"),
        StyleContrast("lash lift", "extensions", "natural lash lift"),
    ),
    "brows": (
        StyleContrast("microblading", "powder brows", "hair-stroke microblading"),
        StyleContrast("powder", "microblading", "ombre powder brows"),
        StyleContrast("lamination", "natural brows", "laminated brows"),
        StyleContrast("tint", "untinted", "tinted brows"),
        StyleContrast("natural", "sharp", "soft natural brows"),
    ),
}

CATEGORY_ALIASES: Dict[str, str] = {
    "barbering": "barber",
    "barbershop": "barber",
    "barbers": "barber",
    "mens grooming": "barber",
    "braid": "braids",
    "braiding": "braids",
    "natural hair": "hair",
    "hair color": "hair",
    "color treatment": "hair",
    "cuts styling": "hair",
    "weaves": "hair",
    "make up": "makeup",
    "makeup artistry": "makeup",
    "nail": "nails",
    "nail art": "nails",
    "manicure": "nails",
    "pedicure": "nails",
    "lash": "lashes",
    "eyelashes": "lashes",
    "lash extensions": "lashes",
    "brow": "brows",
    "eyebrows": "brows",
    "microblading": "brows",
}

# ============================================
# Color vocabulary
# ============================================

NAMED_COLORS: Tuple[Tuple[str, Tuple[int, int, int]], ...] = (
    ("black", (0, 0, 0)),
    ("charcoal", (54, 69, 79)),
    ("gray", (128, 128, 128)),
    ("silver", (192, 192, 192)),
    ("white", (255, 255, 255)),
    ("ivory", (255, 255, 240)),
    ("beige", (222, 196, 160)),
    ("nude", (227, 188, 154)),
    ("blonde", (250, 240, 190)),
    ("gold", (212, 175, 55)),
    ("honey", (169, 112, 45)),
    ("caramel", (175, 111, 9)),
    ("light brown", (181, 101, 29)),
    ("brown", (120, 72, 40)),
    ("dark brown", (64, 38, 24)),
    ("auburn", (145, 40, 25)),
    ("copper", (184, 115, 51)),
    ("orange", (255, 140, 0)),
    ("coral", (255, 127, 80)),
    ("red", (200, 30, 30)),
    ("burgundy", (128, 0, 32)),
    ("pink", (255, 170, 190)),
    ("hot pink", (255, 20, 147)),
    ("mauve", (224, 176, 255)),
    ("purple", (128, 0, 128)),
    ("lavender", (181, 126, 220)),
    ("navy", (0, 0, 128)),
    ("blue", (30, 90, 220)),
    ("teal", (0, 128, 128)),
    ("green", (40, 150, 60)),
    ("olive", (128, 128, 0)),
    ("yellow", (245, 220, 40)),
)

MOOD_VOCABULARY: Tuple[str, ...] = (
    "warm tones",
    "cool tones",
    "neutral tones",
    "pastel",
    "neon",
    "vibrant",
    "bold",
    "soft",
    "muted",
    "natural",
    "glam",
    "dramatic",
    "elegant",
    "minimalist",
    "matte",
    "glossy",
    "dewy",
    "metallic",
    "shimmer",
    "chrome",
    "ombre",
    "balayage",
    "highlights",
    "monochrome",
)


@dataclass(frozen=True)
class FusedContext:
    """The three provider texts built for one image."""

    style_text: str
    semantic_text: str
    color_text: str


# ============================================
# Helpers
# ============================================


def _clean(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    return " ".join(re.sub(r"[^0-9a-z]+", " ", text.lower()).split())


def _text(value) -> Optional[str]:
    """Stripped string value, or None for blanks and non-strings."""
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _string_tags(tags) -> List[str]:
    return [tag for tag in tags or () if isinstance(tag, str)]


def _contains_phrase(text: str, phrase: str) -> bool:
    """True when ``phrase`` occurs in ``text`` on word boundaries (both cleaned)."""
    return f" {phrase} " in f" {text} "


def truncate_text(text: str, max_chars: int = DEFAULT_MAX_TEXT_CHARS) -> str:
    """Cut text to ``max_chars``, preferring a word boundary."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    space = cut.rfind(" ")
    if space > max_chars // 2:
        cut = cut[:space]
    return cut.rstrip(" .,")


def normalize_category(category: Optional[str]) -> Optional[str]:
    """
    Normalize a category name for table lookups.

    Case, punctuation and spacing are ignored and aliases are resolved.
    Unknown categories come back cleaned but otherwise unchanged.

    Example:
        >>> normalize_category("Nail-Art")
        'nails'
        >>> normalize_category("  Barbering ")
        'barber'
    """
    if not isinstance(category, str):
        return None
    cleaned = _clean(category)
    if not cleaned:
        return None
    return CATEGORY_ALIASES.get(cleaned, cleaned)


def dedupe_tags(tags: Iterable[str], limit: Optional[int] = None) -> List[str]:
    """Trim tags and drop case-insensitive duplicates, keeping detection order."""
    if limit is not None and limit <= 0:
        return []
    seen = set()
    result: List[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        stripped = tag.strip()
        key = stripped.lower()
        if not stripped or key in seen:
            continue
        seen.add(key)
        result.append(stripped)
        if limit is not None and len(result) >= limit:
            break
    return result


def category_keywords(category: Optional[str]) -> Tuple[str, ...]:
    """Keywords for a category; empty for unknown categories."""
    normalized = normalize_category(category)
    if normalized is None:
        return ()
    return CATEGORY_KEYWORDS.get(normalized, ())


def select_contrast(category: Optional[str], tags: Sequence[str]) -> Optional[StyleContrast]:
    """
    Pick the contrast entry for a category.

    Tags are scanned in detection order; the first table entry whose style
    appears in a tag wins. Without a match the category's first entry is
    used. Unknown categories have no contrast.
    """
    normalized = normalize_category(category)
    entries = CONTRAST_TABLE.get(normalized or "", ())
    if not entries:
        return None

    for tag in _string_tags(tags):
        cleaned = _clean(tag)
        for entry in entries:
            if _contains_phrase(cleaned, _clean(entry.style)):
                return entry
    return entries[0]


def color_name(hex_code: str) -> Optional[str]:
    """Nearest named color for a hex code; None if the code is malformed."""
    try:
        r, g, b = hex_to_rgb(hex_code)
    except ValueError:
        return None

    def _distance(item: Tuple[str, Tuple[int, int, int]]) -> int:
        cr, cg, cb = item[1]
        return (r - cr) ** 2 + (g - cg) ** 2 + (b - cb) ** 2

    return min(NAMED_COLORS, key=_distance)[0]


def color_names(dominant_colors: Optional[Iterable[str]]) -> List[str]:
    """Distinct color names for a list of hex codes, in input order."""
    names: List[str] = []
    for code in _string_tags(dominant_colors):
        name = color_name(code)
        if name and name not in names:
            names.append(name)
    return names


def mood_terms(tags: Iterable[str]) -> List[str]:
    """Mood/aesthetic vocabulary terms found in the tags, in tag order."""
    found: List[str] = []
    for tag in _string_tags(tags):
        cleaned = _clean(tag)
        for mood in MOOD_VOCABULARY:
            if mood not in found and _contains_phrase(cleaned, mood):
                found.append(mood)
    return found


# ============================================
# Builders
# ============================================


def build_style_context(
    category: Optional[str],
    tags: Sequence[str],
    description: Optional[str] = None,
    dominant_colors: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
    max_tags: int = DEFAULT_MAX_CONTEXT_TAGS,
    max_chars: int = DEFAULT_MAX_TEXT_CHARS,
) -> str:
    """
    Build the enriched text paired with the image for the style vector.

    Parts, in fixed order and joined with ". ":

    1. title
    2. description
    3. "<category> service"
    4. "keywords: ..." from the category keyword table
    5. "features: ..." (deduplicated tags in detection order)
    6. "similar to <similar>, not <opposite>"
    7. "colors: ..." (named dominant colors)

    Missing parts are omitted.

    Args:
        category: Service category; aliases are resolved.
        tags: Detected tags in detection order.
        description: Free-text description.
        dominant_colors: Hex color codes.
        title: Service or upload title.
        max_tags: Cap on tags listed under "features".
        max_chars: Provider text limit.

    Returns:
        The style context, possibly empty.
    """
    tags = _string_tags(tags)
    normalized = normalize_category(category)
    parts: List[str] = [part for part in (_text(title), _text(description)) if part]

    if normalized:
        parts.append(f"{normalized} service")

    keywords = category_keywords(normalized)
    if keywords:
        parts.append("keywords: " + ", ".join(keywords))

    features = dedupe_tags(tags, limit=max_tags)
    if features:
        parts.append("features: " + ", ".join(features))

    contrast = select_contrast(normalized, tags)
    if contrast is not None:
        parts.append(f"similar to {contrast.similar}, not {contrast.opposite}")

    colors = color_names(dominant_colors)
    if colors:
        parts.append("colors: " + ", ".join(colors))

    return truncate_text(PART_SEPARATOR.join(parts), max_chars)


def build_semantic_text(
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    tags: Sequence[str],
    top_n: int = DEFAULT_SEMANTIC_TOP_N,
    max_chars: int = DEFAULT_MAX_TEXT_CHARS,
) -> str:
    """Title + description + category + top-N tags, for the semantic vector."""
    parts: List[str] = [part for part in (_text(title), _text(description)) if part]

    normalized = normalize_category(category)
    if normalized:
        parts.append(normalized)

    top_tags = dedupe_tags(tags or [], limit=top_n)
    if top_tags:
        parts.append(", ".join(top_tags))

    return truncate_text(PART_SEPARATOR.join(parts), max_chars)


def build_color_text(
    dominant_colors: Optional[Sequence[str]],
    tags: Sequence[str],
    max_chars: int = DEFAULT_MAX_TEXT_CHARS,
) -> str:
    """
    Compact color/mood description for the color vector.

    Returns an empty string when there is neither a recognizable color nor
    a mood term, which means the color slot cannot be generated.

    Example:
        >>> build_color_text(["#000000", "#d4af37"], ["glossy", "warm-tones"])
        'colors: black, gold. mood: glossy, warm tones'
    """
    parts: List[str] = []

    colors = color_names(dominant_colors)
    if colors:
        parts.append("colors: " + ", ".join(colors))

    moods = mood_terms(tags or [])
    if moods:
        parts.append("mood: " + ", ".join(moods))

    return truncate_text(PART_SEPARATOR.join(parts), max_chars)


class ContextFusionBuilder:
    """Builds all three provider texts with one context configuration."""

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()

    def build(
        self,
        category: Optional[str],
        tags: Sequence[str],
        description: Optional[str] = None,
        dominant_colors: Optional[Sequence[str]] = None,
        title: Optional[str] = None,
    ) -> FusedContext:
        cfg = self.config
        return FusedContext(
            style_text=build_style_context(
                category,
                tags,
                description=description,
                dominant_colors=dominant_colors,
                title=title,
                max_tags=cfg.max_context_tags,
                max_chars=cfg.max_text_chars,
            ),
            semantic_text=build_semantic_text(
                title,
                description,
                category,
                tags,
                top_n=cfg.semantic_top_n_tags,
                max_chars=cfg.max_text_chars,
            ),
            color_text=build_color_text(dominant_colors, tags, max_chars=cfg.max_text_chars),
        )
