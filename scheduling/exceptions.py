"""
Error taxonomy for the scheduling engine.

Services raise these framework-agnostic errors; the API layer maps them to
HTTP responses through ``api_exception_handler``.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class for all recoverable scheduling errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'scheduling_error'
    default_message = 'Scheduling request could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SchedulingError):
    """Malformed input, e.g. an end time that is not after the start time."""

    default_code = 'validation_error'
    default_message = 'Invalid scheduling data.'


class OverlapError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'slot_overlap'
    default_message = 'This time slot overlaps with an existing slot.'


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'
    default_message = 'Not found.'


class ForbiddenError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'forbidden'
    default_message = 'You are not allowed to perform this action.'


class InvalidSlotError(SchedulingError):
    default_code = 'invalid_slot'
    default_message = "The requested time is not in the coach's available slots."


class SlotTakenError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'slot_taken'
    default_message = 'This time slot is already booked.'


class InvalidTransitionError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'invalid_transition'
    default_message = 'This status change is not allowed.'


class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'conflict'
    default_message = 'The resource was changed by another request.'


def api_exception_handler(exc, context):
    """DRF exception handler that also understands ``SchedulingError``."""
    if isinstance(exc, SchedulingError):
        logger.debug("Scheduling error in %s: %s", context.get('view'), exc.message)
        return Response(
            {'detail': exc.message, 'code': exc.default_code},
            status=exc.status_code,
        )
    return exception_handler(exc, context)
