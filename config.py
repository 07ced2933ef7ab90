import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from agent.scoring import DEFAULT_WEIGHTS, ScoringWeights


class Config:
    BASE_DIR = Path(__file__).resolve().parent
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{(BASE_DIR / 'lost_and_found.db').as_posix()}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    MATCH_MIN_SCORE = int(os.getenv("MATCH_MIN_SCORE", "50"))
    MATCH_TOP_N = int(os.getenv("MATCH_TOP_N", "5"))
    MATCH_EXCELLENT_SCORE = int(os.getenv("MATCH_EXCELLENT_SCORE", "90"))
    # days after a loss / days before a find that a counterpart may be dated
    MATCH_LOST_WINDOW_DAYS = int(os.getenv("MATCH_LOST_WINDOW_DAYS", "60"))
    MATCH_FOUND_WINDOW_DAYS = int(os.getenv("MATCH_FOUND_WINDOW_DAYS", "7"))
    # JSON object, e.g. {"category": 40, "location": 15}
    MATCH_WEIGHTS = os.getenv("MATCH_WEIGHTS")


@dataclass(frozen=True)
class MatchSettings:
    weights: ScoringWeights = field(default_factory=lambda: DEFAULT_WEIGHTS)
    min_score: int = 50
    top_n: int = 5
    excellent_score: int = 90
    lost_window_days: int = 60
    found_window_days: int = 7

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "MatchSettings":
        weights = _parse_weights(config.get("MATCH_WEIGHTS"))
        return cls(
            weights=weights or DEFAULT_WEIGHTS,
            min_score=config.get("MATCH_MIN_SCORE", cls.min_score),
            top_n=config.get("MATCH_TOP_N", cls.top_n),
            excellent_score=config.get("MATCH_EXCELLENT_SCORE", cls.excellent_score),
            lost_window_days=config.get("MATCH_LOST_WINDOW_DAYS", cls.lost_window_days),
            found_window_days=config.get("MATCH_FOUND_WINDOW_DAYS", cls.found_window_days),
        )


def _parse_weights(raw: Union[str, Mapping[str, Any], None]) -> Optional[ScoringWeights]:
    if not raw:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ValueError(f"MATCH_WEIGHTS is not valid JSON: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ValueError("MATCH_WEIGHTS must be a JSON object mapping factor names to weights")
    try:
        return ScoringWeights.from_mapping(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid MATCH_WEIGHTS: {exc}") from exc
