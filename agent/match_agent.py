from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Union

from flask import current_app

from agent.scoring import confidence_for, score_pair
from config import MatchSettings
from models import FoundItem, LostItem, MatchResult
from services import MatchService

Item = Union[LostItem, FoundItem]


@dataclass
class Candidate:
    lost_item_id: int
    found_item_id: int
    score: int
    confidence: str
    item: Item

    @property
    def item_date(self) -> Optional[date]:
        return self.item.item_date

    def to_dict(self) -> dict:
        key = "found_item" if isinstance(self.item, FoundItem) else "lost_item"
        return {
            f"{key}_id": self.item.id,
            key: self.item.summary(),
            "match_score": self.score,
            "similarity_score": self.score,
            "confidence": self.confidence,
        }


class MatchAgent:
    """Builds, scores and ranks candidates for one anchor item."""

    def __init__(self, match_service: MatchService, settings: Optional[MatchSettings] = None):
        self._service = match_service
        self._settings = settings or MatchSettings()

    @property
    def settings(self) -> MatchSettings:
        return self._settings

    # Public orchestrators -------------------------------------------------
    def find_matches_for_lost(self, lost_id: int) -> List[Candidate]:
        lost_item = self._service.approved_lost_item(lost_id)
        candidates = self._perceive_found_items(lost_item)
        return self._decide(((lost_item, found) for found in candidates), anchor=lost_item)

    def find_matches_for_found(self, found_id: int) -> List[Candidate]:
        found_item = self._service.approved_found_item(found_id)
        candidates = self._perceive_lost_items(found_item)
        return self._decide(((lost, found_item) for lost in candidates), anchor=found_item)

    # Perception -----------------------------------------------------------
    def _perceive_found_items(self, lost_item: LostItem) -> List[FoundItem]:
        start = lost_item.last_seen_date
        end = start + timedelta(days=self._settings.lost_window_days)
        return self._service.found_candidates(lost_item.category_id, start, end)

    def _perceive_lost_items(self, found_item: FoundItem) -> List[LostItem]:
        end = found_item.found_date
        start = end - timedelta(days=self._settings.found_window_days)
        return self._service.lost_candidates(found_item.category_id, start, end)

    # Decision -------------------------------------------------------------
    def _decide(self, pairs: Iterable[tuple[LostItem, FoundItem]], anchor: Item) -> List[Candidate]:
        matches: List[Candidate] = []
        considered = 0
        for lost_item, found_item in pairs:
            considered += 1
            score = score_pair(lost_item, found_item, self._settings.weights)
            if score < self._settings.min_score:
                continue
            matches.append(
                Candidate(
                    lost_item_id=lost_item.id,
                    found_item_id=found_item.id,
                    score=score,
                    confidence=confidence_for(score),
                    item=found_item if anchor is lost_item else lost_item,
                )
            )

        # freshest report first among equal scores
        matches.sort(key=lambda c: c.item_date or date.min, reverse=True)
        matches.sort(key=lambda c: c.score, reverse=True)
        current_app.logger.debug(
            "%r: %d candidate(s) considered, %d kept", anchor, considered, len(matches)
        )
        return matches

    # Action ---------------------------------------------------------------
    def persist_top(self, candidates: Iterable[Candidate], limit: Optional[int] = None) -> List[MatchResult]:
        limit = self._settings.top_n if limit is None else limit
        persisted: List[MatchResult] = []
        for candidate in list(candidates)[:limit]:
            result = self._service.save_match(
                candidate.lost_item_id,
                candidate.found_item_id,
                candidate.score,
                candidate.confidence,
            )
            persisted.append(result.match)
        return persisted
