from datetime import UTC, datetime

from database import db


def _now_utc():
    return datetime.now(UTC)


class ClaimStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class Claim(db.Model):
    __tablename__ = "claims"

    id = db.Column(db.Integer, primary_key=True)
    found_item_id = db.Column(db.Integer, db.ForeignKey("found_items.id"), nullable=False, index=True)
    claimant_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default=ClaimStatus.PENDING)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now_utc)

    found_item = db.relationship("FoundItem", back_populates="claims")
    claimant = db.relationship("User")
