from typing import Optional, Sequence

from werkzeug import exceptions


class MatchingError(Exception):
    """Base class for every failure raised by the matching engine."""


class ItemNotFound(MatchingError, exceptions.NotFound):
    """Anchor item is missing or has not been approved yet."""


class MatchNotFound(MatchingError, exceptions.NotFound):
    pass


class Forbidden(MatchingError, exceptions.Forbidden):
    """Acting user owns neither item referenced by the match."""


class ValidationError(MatchingError, exceptions.BadRequest):
    """Unknown status or item-type literal."""


class InvalidTransition(ValidationError):
    """Status change that the match state machine does not allow."""


class PersistenceError(MatchingError, exceptions.InternalServerError):
    """The store is unavailable or a query failed.

    ``partial_results`` carries whatever was computed before the failure so
    interactive callers can still show it.
    """

    def __init__(self, description: Optional[str] = None, partial_results: Optional[Sequence] = None):
        super().__init__(description)
        self.partial_results = list(partial_results or [])
