from database import db


class User(db.Model):
    """Reporting user. Accounts are managed elsewhere; matching only needs ownership."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=True)

    lost_items = db.relationship("LostItem", back_populates="owner")
    found_items = db.relationship("FoundItem", back_populates="owner")

    def __repr__(self) -> str:
        return f"<User {self.username}>"
