"""Views for the coach scheduling API."""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    AvailabilityQuerySerializer,
    BookSessionSerializer,
    CalendarQuerySerializer,
    DayAvailabilitySerializer,
    SessionCancelSerializer,
    SessionListQuerySerializer,
    SessionReadSerializer,
    SessionUpdateSerializer,
    TimeSlotCreateSerializer,
    TimeSlotReadSerializer,
    TimeSlotUpdateSerializer,
)
from . import services
from .types import (
    BookingRequest,
    SessionFilters,
    SessionUpdateData,
    TimeSlotData,
    TimeSlotUpdateData,
)


class TimeSlotListCreateView(APIView):
    """
    List the requesting coach's slots or create a new one.

    GET /api/slots/ - List own slots
    POST /api/slots/ - Create a slot
    """

    def get(self, request):
        """List the coach's slots."""
        slots = services.list_time_slots(request.user.id)
        serializer = TimeSlotReadSerializer(slots, many=True)
        return Response(serializer.data)

    def post(self, request):
        """Create a recurring or one-time slot."""
        serializer = TimeSlotCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        slot = services.create_time_slot(
            request.user.id,
            TimeSlotData(
                start_time=data['start_time'],
                end_time=data['end_time'],
                day_of_week=data.get('day_of_week'),
                specific_date=data.get('specific_date'),
                duration=data['duration'],
                medium=data['medium'],
                notes=data.get('notes', ''),
            )
        )

        response_serializer = TimeSlotReadSerializer(slot)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class TimeSlotDetailView(APIView):
    """
    Update or delete one of the requesting coach's slots.

    PATCH /api/slots/{id}/ - Update slot
    DELETE /api/slots/{id}/ - Delete slot
    """

    def patch(self, request, pk):
        """Update a slot."""
        serializer = TimeSlotUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        update_data = TimeSlotUpdateData(**serializer.validated_data)
        slot = services.update_time_slot(request.user.id, pk, update_data)

        return Response(TimeSlotReadSerializer(slot).data)

    def delete(self, request, pk):
        """Delete a slot."""
        services.delete_time_slot(request.user.id, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CoachAvailabilityView(APIView):
    """
    Per-day availability of a coach.

    GET /api/coaches/{coach_id}/availability/?start_date=X&end_date=Y
    """

    def get(self, request, coach_id):
        query_serializer = AvailabilityQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        availability = services.get_availability(
            coach_id,
            query_serializer.validated_data['start_date'],
            query_serializer.validated_data['end_date'],
        )

        serializer = DayAvailabilitySerializer(availability, many=True)
        return Response(serializer.data)


class SessionListCreateView(APIView):
    """
    List the requesting user's sessions or book a new one.

    GET /api/sessions/?role=&status=&upcoming=&date= - List sessions
    POST /api/sessions/ - Book a session as client
    """

    def get(self, request):
        """List sessions the user takes part in."""
        query_serializer = SessionListQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        data = query_serializer.validated_data
        sessions = services.list_sessions(
            request.user.id,
            SessionFilters(
                role=data.get('role'),
                status=data.get('status'),
                upcoming=data.get('upcoming', False),
                on_date=data.get('date'),
            )
        )

        serializer = SessionReadSerializer(sessions, many=True)
        return Response(serializer.data)

    def post(self, request):
        """Book a session inside one of the coach's open slots."""
        serializer = BookSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = services.book_session(request.user.id, BookingRequest(**serializer.validated_data))

        response_serializer = SessionReadSerializer(session)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


class SessionDetailView(APIView):
    """
    Retrieve or update a session.

    GET /api/sessions/{id}/ - Retrieve session
    PATCH /api/sessions/{id}/ - Change status and/or fields
    """

    def get(self, request, pk):
        """Retrieve a session."""
        session = services.get_session(pk, request.user.id)
        return Response(SessionReadSerializer(session).data)

    def patch(self, request, pk):
        """Update a session."""
        serializer = SessionUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        update_data = SessionUpdateData(**serializer.validated_data)
        session = services.update_session(pk, request.user.id, update_data)

        return Response(SessionReadSerializer(session).data)


class SessionCancelView(APIView):
    """
    Cancel a session.

    POST /api/sessions/{id}/cancel/
    """

    def post(self, request, pk):
        """Cancel a scheduled or confirmed session."""
        serializer = SessionCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = services.cancel_session(pk, request.user.id, serializer.validated_data['reason'])

        return Response(SessionReadSerializer(session).data)


class CoachCalendarView(APIView):
    """
    The requesting coach's sessions of one month grouped by date.

    GET /api/calendar/?year=Y&month=M
    """

    def get(self, request):
        query_serializer = CalendarQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        grouped = services.get_coach_calendar(
            request.user.id,
            query_serializer.validated_data['year'],
            query_serializer.validated_data['month'],
        )

        return Response({
            day: SessionReadSerializer(sessions, many=True).data
            for day, sessions in grouped.items()
        })
