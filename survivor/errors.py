"""Error types raised by the services and rendered by the app's exception handlers.

Every error carries a short message that is safe to show to the user.
Store and unexpected failures are logged with their internal details where
they are caught; only the generic message leaves the server.
"""

from contextlib import contextmanager

from fastapi import status


class SurvivorError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(SurvivorError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotAuthorized(SurvivorError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(SurvivorError):
    status_code = status.HTTP_404_NOT_FOUND


class StoreError(SurvivorError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class FeedError(SurvivorError):
    """An upstream odds or fixture feed failed."""

    status_code = status.HTTP_502_BAD_GATEWAY


def store_error(logger, event: str, exc: Exception, message: str) -> StoreError:
    """Log a store failure with its internal details and return the user-safe error."""
    orig = getattr(exc, "orig", None)
    logger.error(
        event,
        message=str(orig or exc),
        details=getattr(exc, "statement", None),
        hint=type(orig or exc).__name__,
    )
    return StoreError(message)


@contextmanager
def unexpected_errors(logger, event: str, message: str):
    """Let known errors through; log anything else and replace it with a generic failure."""
    try:
        yield
    except SurvivorError:
        raise
    except Exception as exc:
        logger.exception(event)
        raise SurvivorError(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR) from exc
