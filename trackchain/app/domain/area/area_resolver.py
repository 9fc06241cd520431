"""
Area Resolver (Domain Logic).

Derives a display/search area {country, state} for a segment from its
boundary checkpoints, falling back to free-text location strings.
Advisory only: custody decisions never depend on it.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from trackchain.app.models.checkpoint import Checkpoint

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Area:
    country: str
    state: str


def parse_area_text(value: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a "City, State, Country" string into (state, country).

    The first token is taken as the state and the last as the country,
    so "Pune, Maharashtra, India" yields ("Pune", "India"). Existing
    clients filter on these values, so the mapping is kept as-is.
    """
    if not value:
        return None, None

    tokens = [token.strip() for token in value.split(",") if token.strip()]
    if not tokens:
        return None, None

    return tokens[0], tokens[-1]


def resolve_area(
    start_checkpoint: Optional[Checkpoint] = None,
    end_checkpoint: Optional[Checkpoint] = None,
    origin_text: Optional[str] = None,
    destination_text: Optional[str] = None,
) -> Area:
    """
    Resolve the area of a segment.

    Precedence per part: end checkpoint, start checkpoint, parsed
    destination text, parsed origin text, then "Unknown".
    """
    dest_state, dest_country = parse_area_text(destination_text)
    origin_state, origin_country = parse_area_text(origin_text)

    country = (
        _checkpoint_attr(end_checkpoint, "country")
        or _checkpoint_attr(start_checkpoint, "country")
        or dest_country
        or origin_country
        or UNKNOWN
    )
    state = (
        _checkpoint_attr(end_checkpoint, "state")
        or _checkpoint_attr(start_checkpoint, "state")
        or dest_state
        or origin_state
        or UNKNOWN
    )
    return Area(country=country, state=state)


def checkpoint_label(checkpoint: Optional[Checkpoint]) -> Optional[str]:
    """'State, Country' label of a checkpoint, or None when neither is set."""
    if checkpoint is None:
        return None
    parts = [p for p in (_checkpoint_attr(checkpoint, "state"), _checkpoint_attr(checkpoint, "country")) if p]
    return ", ".join(parts) if parts else None


def area_tags(
    start_checkpoint: Optional[Checkpoint] = None,
    end_checkpoint: Optional[Checkpoint] = None,
) -> List[str]:
    """Deduplicated search labels for a segment, in a stable order."""
    candidates = [
        checkpoint_label(start_checkpoint),
        checkpoint_label(end_checkpoint),
        _checkpoint_attr(start_checkpoint, "country"),
        _checkpoint_attr(end_checkpoint, "country"),
        _checkpoint_attr(start_checkpoint, "city"),
        _checkpoint_attr(end_checkpoint, "city"),
        _checkpoint_attr(start_checkpoint, "name"),
        _checkpoint_attr(end_checkpoint, "name"),
    ]

    tags: List[str] = []
    for value in candidates:
        if value and value not in tags:
            tags.append(value)
    return tags


def matches_area(tags: List[str], query: Optional[str]) -> bool:
    """Case-insensitive substring match of a query against area tags."""
    term = (query or "").strip().lower()
    if not term:
        return True
    return any(term in tag.lower() for tag in tags)


def _checkpoint_attr(checkpoint: Optional[Checkpoint], name: str) -> Optional[str]:
    if checkpoint is None:
        return None
    value = getattr(checkpoint, name, None)
    if value is None:
        return None
    value = str(value).strip()
    return value or None
