from models.claim import Claim, ClaimStatus
from models.item import Category, FoundItem, FoundStatus, Location, LostItem, LostStatus
from models.match_result import MatchConfidence, MatchResult, MatchStatus
from models.user import User

__all__ = [
    "LostItem",
    "LostStatus",
    "FoundItem",
    "FoundStatus",
    "Category",
    "Location",
    "Claim",
    "ClaimStatus",
    "MatchResult",
    "MatchStatus",
    "MatchConfidence",
    "User",
]
