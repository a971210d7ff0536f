"""
Sunny Video Backend: Filter & Emoji Catalog
=============================================

What:  The fixed set of visual filters and emoji overlays offered on the
       recording screen.
How:   Filters are applied by the browser as CSS `filter` values on the
       preview and the playback <video>; the emoji is drawn as an overlay.
       The backend stores the chosen values with each message, so it is
       the authority on which values are accepted.
Who:   MessageService validates uploads against it; GET /api/effects serves it.
"""

from typing import Dict, List, NamedTuple, Optional

from sunnyvideo.exceptions import ValidationError


class VideoFilter(NamedTuple):
    name: str
    value: str
    css: str


FILTERS: List[VideoFilter] = [
    VideoFilter("None", "none", "none"),
    VideoFilter("Sepia", "sepia", "sepia(100%)"),
    VideoFilter("Grayscale", "grayscale", "grayscale(100%)"),
    VideoFilter("Blur", "blur", "blur(2px)"),
    VideoFilter("Brightness", "brightness", "brightness(150%)"),
    VideoFilter("Contrast", "contrast", "contrast(150%)"),
    VideoFilter("Hue Rotate", "hue-rotate", "hue-rotate(90deg)"),
    VideoFilter("Saturate", "saturate", "saturate(200%)"),
]

EMOJIS: List[str] = ["😀", "😂", "🥰", "😎", "🤔", "😮", "🎉", "❤️", "👍", "🔥", "⭐", "🌈"]

DEFAULT_FILTER = "none"

_FILTERS_BY_VALUE: Dict[str, VideoFilter] = {f.value: f for f in FILTERS}


def css_for(value: str) -> str:
    """CSS filter for a filter value; unknown values render unfiltered."""
    video_filter = _FILTERS_BY_VALUE.get(value)
    return video_filter.css if video_filter else "none"


def validate_filter(value: Optional[str]) -> str:
    """
    Normalize and check a filter value.

    Returns:  The canonical value ("none" when blank).
    Raises:   ValidationError for values outside the catalog.
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return DEFAULT_FILTER
    if normalized not in _FILTERS_BY_VALUE:
        raise ValidationError(
            message=f"Unknown filter '{value}'.",
            field="filter",
            context={"allowed": list(_FILTERS_BY_VALUE)},
        )
    return normalized


def validate_emoji(value: Optional[str]) -> Optional[str]:
    """Blank means no overlay; anything else must be in the catalog."""
    stripped = (value or "").strip()
    if not stripped:
        return None
    if stripped not in EMOJIS:
        raise ValidationError(
            message="Unknown emoji overlay.",
            field="emoji",
            context={"allowed": EMOJIS},
        )
    return stripped


def catalog() -> Dict[str, list]:
    return {
        "filters": [f._asdict() for f in FILTERS],
        "emojis": list(EMOJIS),
    }
