from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import (Forbidden, InvalidTransition, ItemNotFound, MatchNotFound,
                    PersistenceError, ValidationError)
from models import (Claim, ClaimStatus, FoundItem, FoundStatus, LostItem,
                    LostStatus, MatchResult, MatchStatus)

ITEM_TYPES = ("lost", "found")


@dataclass
class UpsertResult:
    match: MatchResult
    created: bool


def match_reason(score: int, confidence: str) -> str:
    return f"Match confidence: {confidence} ({score}% similarity)"


class MatchService:
    def __init__(self, session: Session):
        self._session = session

    # Item access ----------------------------------------------------------
    def approved_lost_item(self, lost_id: int) -> LostItem:
        item = self._get(LostItem, lost_id)
        if item is None or item.status != LostStatus.APPROVED:
            raise ItemNotFound(f"Lost item {lost_id} not found or not approved")
        return item

    def approved_found_item(self, found_id: int) -> FoundItem:
        item = self._get(FoundItem, found_id)
        if item is None or item.status != FoundStatus.APPROVED:
            raise ItemNotFound(f"Found item {found_id} not found or not approved")
        return item

    def found_candidates(self, category_id: int, start: date, end: date) -> List[FoundItem]:
        """Approved, unclaimed found items of a category dated within [start, end]."""
        claimed = select(Claim.found_item_id).where(Claim.status == ClaimStatus.APPROVED)
        query = (
            FoundItem.query.filter(
                FoundItem.category_id == category_id,
                FoundItem.status == FoundStatus.APPROVED,
                FoundItem.found_date.between(start, end),
                FoundItem.id.not_in(claimed),
            )
            .order_by(FoundItem.found_date.desc())
        )
        return self._all(query)

    def lost_candidates(self, category_id: int, start: date, end: date) -> List[LostItem]:
        query = (
            LostItem.query.filter(
                LostItem.category_id == category_id,
                LostItem.status == LostStatus.APPROVED,
                LostItem.last_seen_date.between(start, end),
            )
            .order_by(LostItem.last_seen_date.desc())
        )
        return self._all(query)

    def lost_ids_needing_matches(self, excellent_score: int) -> List[int]:
        """Approved lost items without an excellent match that is still live (not dismissed)."""
        covered = select(MatchResult.lost_item_id).where(
            MatchResult.score >= excellent_score,
            MatchResult.status != MatchStatus.DISMISSED,
        )
        query = (
            self._session.query(LostItem.id)
            .filter(LostItem.status == LostStatus.APPROVED, LostItem.id.not_in(covered))
            .order_by(LostItem.id.asc())
        )
        return [row.id for row in self._all(query)]

    # Match store ----------------------------------------------------------
    def save_match(self, lost_id: int, found_id: int, score: int, confidence: str) -> UpsertResult:
        """Insert a suggestion, or refresh score and reason of the existing pair.

        Status is never written on the update path, so confirmed and dismissed
        matches keep their status through rescoring.
        """
        reason = match_reason(score, confidence)
        try:
            match = self._find_pair(lost_id, found_id)
            if match is not None:
                self._refresh(match, score, reason)
                return UpsertResult(match=match, created=False)

            match = MatchResult(
                lost_item_id=lost_id,
                found_item_id=found_id,
                score=score,
                reason=reason,
                status=MatchStatus.SUGGESTED,
            )
            self._session.add(match)
            try:
                self._session.commit()
            except IntegrityError:
                # another writer inserted the pair first; update their row instead
                self._session.rollback()
                match = self._find_pair(lost_id, found_id)
                if match is None:
                    raise
                self._refresh(match, score, reason)
                return UpsertResult(match=match, created=False)
            return UpsertResult(match=match, created=True)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"Could not save match {lost_id}/{found_id}: {exc}") from exc

    def get_match(self, match_id: int) -> MatchResult:
        match = self._get(MatchResult, match_id)
        if match is None:
            raise MatchNotFound(f"Match {match_id} not found")
        return match

    def saved_matches(self, item_type: str, item_id: int, status: Optional[str] = None) -> List[MatchResult]:
        if item_type not in ITEM_TYPES:
            raise ValidationError("Invalid item type. Must be 'lost' or 'found'")
        if status is not None and status not in MatchStatus.ALL:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(MatchStatus.ALL)}")

        if item_type == "lost":
            model, column = LostItem, MatchResult.lost_item_id
        else:
            model, column = FoundItem, MatchResult.found_item_id
        if self._get(model, item_id) is None:
            raise ItemNotFound(f"{item_type} item {item_id} not found")

        query = MatchResult.query.filter(column == item_id)
        if status is not None:
            query = query.filter(MatchResult.status == status)
        query = query.order_by(MatchResult.score.desc(), MatchResult.created_at.desc())
        return self._all(query)

    def suggested_for_owner(self, user_id: int, min_score: int = 50) -> List[MatchResult]:
        query = (
            MatchResult.query.join(MatchResult.lost_item)
            .filter(
                LostItem.user_id == user_id,
                MatchResult.status == MatchStatus.SUGGESTED,
                MatchResult.score >= min_score,
            )
            .order_by(MatchResult.score.desc(), MatchResult.created_at.desc())
        )
        return self._all(query)

    # State machine --------------------------------------------------------
    def owns_match(self, match: MatchResult, user_id: int) -> bool:
        return user_id in {match.lost_item.user_id, match.found_item.user_id}

    def set_match_status(self, match_id: int, status: str, user_id: int) -> MatchResult:
        """Move a match out of ``suggested`` on behalf of one of the two item owners.

        Repeating the current status is a no-op. Every other move away from a
        confirmed or dismissed match, and any move back to ``suggested``, is
        rejected.
        """
        if status not in MatchStatus.ALL:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(MatchStatus.ALL)}")
        match = self.get_match(match_id)
        if not self.owns_match(match, user_id):
            raise Forbidden(f"User {user_id} does not own an item of match {match_id}")

        if match.status == status:
            return match
        if not match.is_suggested or status == MatchStatus.SUGGESTED:
            raise InvalidTransition(f"Cannot move match {match_id} from {match.status} to {status}")

        match.status = status
        match.action_date = datetime.now(UTC)
        if status == MatchStatus.CONFIRMED:
            match.confirmed_by = user_id
        else:
            match.dismissed_by = user_id
        self._commit(f"Could not update match {match_id}")
        current_app.logger.info("Match %s %s by user %s", match_id, status, user_id)
        return match

    def rollback(self) -> None:
        self._session.rollback()

    # Helpers --------------------------------------------------------------
    def _find_pair(self, lost_id: int, found_id: int) -> Optional[MatchResult]:
        return MatchResult.query.filter_by(lost_item_id=lost_id, found_item_id=found_id).first()

    def _refresh(self, match: MatchResult, score: int, reason: str) -> None:
        match.score = score
        match.reason = reason
        self._session.commit()

    def _get(self, model, ident: int):
        try:
            return self._session.get(model, ident)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load {model.__name__} {ident}: {exc}") from exc

    def _all(self, query) -> list:
        try:
            return query.all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Query failed: {exc}") from exc

    def _commit(self, message: str) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"{message}: {exc}") from exc
