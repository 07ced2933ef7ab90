from typing import List, Optional

from agent.auto_matcher import AutoMatcher
from agent.match_agent import Candidate, MatchAgent
from errors import PersistenceError
from models import MatchResult
from services.match_service import MatchService


class MatchLifecycle:
    """Entry points for showing matches to item owners and recording their decisions."""

    def __init__(self, match_service: MatchService, agent: MatchAgent):
        self._service = match_service
        self._agent = agent
        self._auto_matcher = AutoMatcher(match_service, agent)

    def matches_for_lost(self, lost_id: int) -> List[Candidate]:
        candidates = self._agent.find_matches_for_lost(lost_id)
        self._persist(candidates)
        return candidates

    def matches_for_found(self, found_id: int) -> List[Candidate]:
        candidates = self._agent.find_matches_for_found(found_id)
        self._persist(candidates)
        return candidates

    def saved_matches(self, item_type: str, item_id: int, status: Optional[str] = None) -> List[MatchResult]:
        return self._service.saved_matches(item_type, item_id, status)

    def suggested_for_owner(self, user_id: int) -> List[MatchResult]:
        return self._service.suggested_for_owner(user_id, self._agent.settings.min_score)

    def set_match_status(self, match_id: int, status: str, user_id: int) -> MatchResult:
        return self._service.set_match_status(match_id, status, user_id)

    def run_auto_matching(self) -> dict:
        return self._auto_matcher.run().to_dict()

    def _persist(self, candidates: List[Candidate]) -> None:
        try:
            self._agent.persist_top(candidates)
        except PersistenceError as exc:
            exc.partial_results = list(candidates)
            raise
