import functools

from gigmarket.services.repository import rollback
from gigmarket.utils.exceptions import ServiceError, ConflictError


class TransitionResult:
    """
    Outcome of a lifecycle operation. Guard violations come back here as a
    typed error instead of being raised, so callers branch rather than unwind.
    """

    __slots__ = ("value", "error")

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    @property
    def ok(self):
        return self.error is None

    @property
    def is_conflict(self):
        return isinstance(self.error, ConflictError)

    def __repr__(self):
        if self.ok:
            return f"<TransitionResult ok value={self.value!r}>"
        return f"<TransitionResult {type(self.error).__name__} {self.error.code}>"


def returns_result(fn):
    """Run fn; a raised ServiceError rolls back and becomes a rejected result."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return TransitionResult(value=fn(*args, **kwargs))
        except ServiceError as exc:
            rollback()
            return TransitionResult(error=exc)

    return wrapper
