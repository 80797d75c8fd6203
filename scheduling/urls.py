"""
URL routing for the scheduling API.
"""

from django.urls import path
from .views import (
    CoachAvailabilityView,
    CoachCalendarView,
    SessionCancelView,
    SessionDetailView,
    SessionListCreateView,
    TimeSlotDetailView,
    TimeSlotListCreateView,
)

urlpatterns = [
    path('slots/', TimeSlotListCreateView.as_view(), name='slot-list-create'),
    path('slots/<int:pk>/', TimeSlotDetailView.as_view(), name='slot-detail'),
    path('coaches/<int:coach_id>/availability/', CoachAvailabilityView.as_view(), name='coach-availability'),
    path('sessions/', SessionListCreateView.as_view(), name='session-list-create'),
    path('sessions/<int:pk>/', SessionDetailView.as_view(), name='session-detail'),
    path('sessions/<int:pk>/cancel/', SessionCancelView.as_view(), name='session-cancel'),
    path('calendar/', CoachCalendarView.as_view(), name='coach-calendar'),
]
