"""Exception taxonomy for the sync engine.

The scheduler catches everything at the tick boundary, logs it, and lets the
next tick retry by re-polling. Only the submission errors reach clients, as
HTTP 409 and 422 responses.
"""


class SyncEngineError(Exception):
    """Base class for all sync engine errors."""


class TransientUpstreamError(SyncEngineError):
    """Feed fetch failed, timed out, or the client circuit is open.

    Attributes:
        game_pk: Game being fetched when the failure happened (if known)
    """

    def __init__(self, message: str, game_pk: int | None = None):
        super().__init__(message)
        self.game_pk = game_pk


class StoreUnavailableError(SyncEngineError):
    """Durable store could not be read or written.

    Raised out of resolve() so the event is not marked resolved and is
    retried on a later tick.
    """


class PersistenceConflictError(SyncEngineError):
    """Transactional batch write was rejected as a whole."""


class DuplicatePredictionError(SyncEngineError):
    """A user already holds a prediction for this game event or pitcher."""

    def __init__(self, user_id: str, game_pk: int, key: int):
        super().__init__(
            f"User {user_id} already has a prediction for game {game_pk} / {key}"
        )
        self.user_id = user_id
        self.game_pk = game_pk
        self.key = key


class InvalidPredictionError(SyncEngineError):
    """Prediction submission failed validation."""
