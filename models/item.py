from datetime import UTC, datetime

from database import db


def _now_utc():
    return datetime.now(UTC)


class LostStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MATCHED = "matched"
    RESOLVED = "resolved"
    ARCHIVED = "archived"

    ALL = (PENDING, APPROVED, REJECTED, MATCHED, RESOLVED, ARCHIVED)


class FoundStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLAIMED = "claimed"
    RESOLVED = "resolved"
    ARCHIVED = "archived"

    ALL = (PENDING, APPROVED, REJECTED, CLAIMED, RESOLVED, ARCHIVED)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)


class Location(db.Model):
    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)


class LostItem(db.Model):
    __tablename__ = "lost_items"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    last_seen_date = db.Column(db.Date, nullable=False, index=True)
    unique_identifiers = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=LostStatus.PENDING, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now_utc)

    category = db.relationship("Category")
    location = db.relationship("Location")
    owner = db.relationship("User", back_populates="lost_items")
    matches = db.relationship(
        "MatchResult",
        back_populates="lost_item",
        cascade="all, delete-orphan"
    )

    @property
    def item_date(self):
        return self.last_seen_date

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.name if self.category else None,
            "location": self.location.name if self.location else None,
            "last_seen_date": self.last_seen_date.isoformat() if self.last_seen_date else None,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"<LostItem {self.id} {self.title[:15]}>"


class FoundItem(db.Model):
    __tablename__ = "found_items"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    found_date = db.Column(db.Date, nullable=False, index=True)
    unique_identifiers = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=FoundStatus.PENDING, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now_utc)

    category = db.relationship("Category")
    location = db.relationship("Location")
    owner = db.relationship("User", back_populates="found_items")
    claims = db.relationship("Claim", back_populates="found_item", cascade="all, delete-orphan")
    matches = db.relationship(
        "MatchResult",
        back_populates="found_item",
        cascade="all, delete-orphan"
    )

    @property
    def item_date(self):
        return self.found_date

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.name if self.category else None,
            "location": self.location.name if self.location else None,
            "found_date": self.found_date.isoformat() if self.found_date else None,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"<FoundItem {self.id} {self.title[:15]}>"
