"""Pure similarity scoring for a (lost, found) pair.

Nothing here touches the database. Items are read through their attributes
(``category_id``, ``location_id``, ``last_seen_date``/``found_date``, ``title``,
``description``, ``unique_identifiers``) so model instances and plain objects
score the same way.
"""
import math
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Optional

LOCATION_MISMATCH_CREDIT = 0.3
LOCATION_UNKNOWN_CREDIT = 0.5
MIN_TOKEN_LENGTH = 3

# (max day gap, credit), checked in order
DATE_PROXIMITY_TIERS = (
    (1, 1.0),
    (3, 0.9),
    (7, 0.7),
    (14, 0.5),
    (30, 0.3),
)
DATE_FALLBACK_CREDIT = 0.1


@dataclass(frozen=True)
class ScoringWeights:
    category: float = 35
    location: float = 20
    date: float = 15
    title: float = 15
    description: float = 10
    identifiers: float = 5

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value < 0:
                raise ValueError(f"weight '{name}' must not be negative")
        if not math.isclose(self.total, 100):
            raise ValueError(f"weights must sum to 100, got {self.total:g}")

    @property
    def total(self) -> float:
        return sum(asdict(self).values())

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ScoringWeights":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"unknown weight(s): {', '.join(sorted(unknown))}")
        return cls(**values)


DEFAULT_WEIGHTS = ScoringWeights()


class MatchConfidence:
    EXCELLENT = "excellent"
    GOOD = "good"
    POSSIBLE = "possible"
    POOR = "poor"


def confidence_for(score: int) -> str:
    if score >= 90:
        return MatchConfidence.EXCELLENT
    if score >= 70:
        return MatchConfidence.GOOD
    if score >= 50:
        return MatchConfidence.POSSIBLE
    return MatchConfidence.POOR


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def string_similarity(first: Optional[str], second: Optional[str]) -> float:
    """Bidirectional token-containment overlap in [0, 1].

    Tokens of two characters or fewer never match. Every cross pair where one
    token contains the other counts once; the count is divided by the larger
    token count of the two strings.
    """
    first, second = _normalize(first), _normalize(second)
    if not first or not second:
        return 0.0
    if first == second:
        return 1.0

    words1 = first.split()
    words2 = second.split()
    match_count = 0
    for word1 in words1:
        if len(word1) < MIN_TOKEN_LENGTH:
            continue
        for word2 in words2:
            if len(word2) < MIN_TOKEN_LENGTH:
                continue
            if word2 in word1 or word1 in word2:
                match_count += 1

    total_words = max(len(words1), len(words2))
    return min(match_count / total_words, 1.0)


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        try:
            return _as_datetime(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return None


def date_proximity(lost_date: Any, found_date: Any) -> float:
    """Credit in [0, 1] for how soon after the loss the item was found.

    A found date before the lost date earns nothing. Missing or unparseable
    dates fall to the lowest tier.
    """
    lost = _as_datetime(lost_date)
    found = _as_datetime(found_date)
    if lost is None or found is None:
        return DATE_FALLBACK_CREDIT
    if found < lost:
        return 0.0

    days = (found - lost).total_seconds() / 86400
    for max_days, credit in DATE_PROXIMITY_TIERS:
        if days <= max_days:
            return credit
    return DATE_FALLBACK_CREDIT


def location_credit(lost_location_id: Optional[int], found_location_id: Optional[int]) -> float:
    if lost_location_id is None or found_location_id is None:
        return LOCATION_UNKNOWN_CREDIT
    if lost_location_id == found_location_id:
        return 1.0
    return LOCATION_MISMATCH_CREDIT


def score_pair(lost, found, weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    """Score a lost/found pair from 0 to 100. Different categories score exactly 0."""
    if lost.category_id != found.category_id:
        return 0

    total = weights.category
    total += weights.location * location_credit(lost.location_id, found.location_id)
    total += weights.date * date_proximity(lost.last_seen_date, found.found_date)
    total += weights.title * string_similarity(lost.title, found.title)
    total += weights.description * string_similarity(lost.description, found.description)
    if lost.unique_identifiers and found.unique_identifiers:
        total += weights.identifiers * string_similarity(lost.unique_identifiers, found.unique_identifiers)

    # half rounds up
    return max(0, min(100, math.floor(total + 0.5)))
