from services.match_service import ITEM_TYPES, MatchService, UpsertResult

__all__ = ["ITEM_TYPES", "MatchService", "UpsertResult"]
