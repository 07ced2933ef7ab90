from datetime import UTC, datetime

from agent.scoring import MatchConfidence  # noqa: F401
from database import db


class MatchStatus:
    SUGGESTED = "suggested"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"

    ALL = (SUGGESTED, CONFIRMED, DISMISSED)


def _now_utc():
    return datetime.now(UTC)


class MatchResult(db.Model):
    __tablename__ = "match_results"
    __table_args__ = (
        db.UniqueConstraint("lost_item_id", "found_item_id", name="uq_match_pair"),
    )

    id = db.Column(db.Integer, primary_key=True)
    lost_item_id = db.Column(db.Integer, db.ForeignKey("lost_items.id", ondelete="CASCADE"), nullable=False, index=True)
    found_item_id = db.Column(db.Integer, db.ForeignKey("found_items.id", ondelete="CASCADE"), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=MatchStatus.SUGGESTED)
    confirmed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    dismissed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    action_date = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_now_utc, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now_utc, onupdate=_now_utc, nullable=False)

    lost_item = db.relationship("LostItem", back_populates="matches")
    found_item = db.relationship("FoundItem", back_populates="matches")

    @property
    def is_suggested(self) -> bool:
        return self.status == MatchStatus.SUGGESTED

    def to_dict(self):
        return {
            "id": self.id,
            "lost_item_id": self.lost_item_id,
            "found_item_id": self.found_item_id,
            "lost_item": self.lost_item.summary() if self.lost_item else None,
            "found_item": self.found_item.summary() if self.found_item else None,
            "similarity_score": self.score,
            "match_reason": self.reason,
            "status": self.status,
            "confirmed_by": self.confirmed_by,
            "dismissed_by": self.dismissed_by,
            "action_date": self.action_date.isoformat() if self.action_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
