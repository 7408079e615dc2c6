"""Exceptions raised by :mod:`editorial.services.store`."""


class StoreBaseException(RuntimeError):
    """Base for store exceptions."""


class NoSuchSubmission(StoreBaseException):
    """A request was made for a submission that does not exist."""


class NoSuchContent(StoreBaseException):
    """A request was made for content that does not exist."""


class TransactionFailed(StoreBaseException):
    """Raised when there was a problem committing changes to the database."""


class Unavailable(StoreBaseException):
    """The editorial data store is not available."""


class ConsistencyError(StoreBaseException):
    """
    Attempted to persist stale or inconsistent state.

    Raised when a conditional update matches no row, i.e. the state that the
    caller validated against is no longer current.
    """


class Conflict(StoreBaseException):
    """A write was rejected by a uniqueness constraint."""
