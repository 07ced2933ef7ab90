from dataclasses import asdict, dataclass

from flask import current_app

from agent.match_agent import MatchAgent
from services import MatchService


@dataclass
class AutoMatchSummary:
    processed: int = 0
    matches_found: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class AutoMatcher:
    """Batch sweep that refreshes suggestions for every approved lost item
    still lacking an excellent, non-dismissed match.

    Each item is handled on its own; a failure is logged and counted and the
    sweep moves on. Overlapping sweeps only repeat work since saves are
    idempotent.
    """

    def __init__(self, match_service: MatchService, agent: MatchAgent):
        self._service = match_service
        self._agent = agent

    def run(self) -> AutoMatchSummary:
        settings = self._agent.settings
        summary = AutoMatchSummary()
        lost_ids = self._service.lost_ids_needing_matches(settings.excellent_score)
        current_app.logger.info("Auto-matching %d lost item(s)", len(lost_ids))

        for lost_id in lost_ids:
            try:
                candidates = self._agent.find_matches_for_lost(lost_id)
                summary.processed += 1
                saved = self._agent.persist_top(candidates, settings.top_n)
                summary.matches_found += len(saved)
            except Exception as exc:
                current_app.logger.exception("Error matching lost item %s", lost_id, exc_info=exc)
                self._service.rollback()
                summary.errors += 1

        current_app.logger.info(
            "Auto-matching done: processed=%d matches_found=%d errors=%d",
            summary.processed, summary.matches_found, summary.errors,
        )
        return summary
