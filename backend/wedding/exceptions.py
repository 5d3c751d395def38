"""
Like errors and the custom exception handler for DRF.

Provides consistent error response format across the API.
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.db import IntegrityError
import logging

logger = logging.getLogger(__name__)


class LikeError(Exception):
    """Base class for failures of the like toggle."""


class EntityNotFound(LikeError):
    """The photo or song being liked (or deleted) does not exist."""

    def __init__(self, kind: str, entity_id: int):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} {entity_id} does not exist")


class DuplicateKey(LikeError):
    """A like for this (entity, session) pair already exists."""

    def __init__(self, entity_id: int, session_key: str):
        self.entity_id = entity_id
        self.session_key = session_key
        super().__init__(f"Session already likes entity {entity_id}")


class LikeNotFound(LikeError):
    """No like exists for this (entity, session) pair."""

    def __init__(self, entity_id: int, session_key: str):
        self.entity_id = entity_id
        self.session_key = session_key
        super().__init__(f"Session does not like entity {entity_id}")


class TransactionConflict(LikeError):
    """The database aborted the toggle transaction (serialization failure, deadlock, lock timeout)."""


def custom_exception_handler(exc, context):
    """
    Custom exception handler that:
    1. Logs all exceptions
    2. Converts domain and Django exceptions to DRF responses
    3. Provides consistent error format
    """

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    # If DRF handled it, enhance the response
    if response is not None:
        if not isinstance(response.data, dict) or 'error' not in response.data:
            response.data = {
                'error': str(exc),
                'details': response.data
            }
        return response

    if isinstance(exc, EntityNotFound):
        return Response(
            {'error': str(exc)},
            status=status.HTTP_404_NOT_FOUND
        )

    if isinstance(exc, TransactionConflict):
        logger.warning(f"Giving up after transaction conflicts: {exc}")
        return Response(
            {'error': 'The server is busy. Please try again.'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    if isinstance(exc, (DuplicateKey, LikeNotFound, IntegrityError)):
        logger.warning(f"{type(exc).__name__}: {exc}")
        return Response(
            {'error': 'Data integrity error. This may be a duplicate entry.'},
            status=status.HTTP_409_CONFLICT
        )

    if isinstance(exc, ValueError):
        return Response(
            {'error': str(exc)},
            status=status.HTTP_400_BAD_REQUEST
        )

    # Log unexpected exceptions
    logger.exception(f"Unhandled exception: {exc}")

    return Response(
        {'error': 'An unexpected error occurred.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
