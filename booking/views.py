# booking/views.py
"""
API views for the Venue Booking.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import logging

from rest_framework import mixins, permissions, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from .availability import availability_store
from .calendar import calendar_projector
from .catalog import venue_catalog
from .conflicts import conflict_resolver
from .exceptions import NoAvailabilityWindow, Overlap, SchedulingError
from .models import Booking, Notification, Tool, is_admin_user
from .notifications import notification_service
from .serializers import (
    AvailabilityCheckSerializer, AvailabilityWindowSerializer, BookingDecisionSerializer,
    BookingRequestSerializer, BookingSerializer, CalendarQuerySerializer,
    NotificationSerializer, ToolSerializer, VenueSerializer,
)
from .utils.time_utils import parse_date
from .workflow import approval_workflow

logger = logging.getLogger(__name__)


class IsAdminRole(permissions.BasePermission):
    """Administrators only (profile role admin or staff)."""

    def has_permission(self, request, view):
        return is_admin_user(request.user)


class IsAdminOrReadOnly(permissions.BasePermission):
    """Any authenticated user may read; only administrators may write."""

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_admin_user(request.user)


class SchedulingErrorMixin:
    """Translate engine errors into ``{reason, detail}`` responses."""

    def handle_exception(self, exc):
        if isinstance(exc, SchedulingError):
            return Response(exc.to_dict(), status=exc.status_code)
        return super().handle_exception(exc)


def _query_int(request, *names):
    for name in names:
        value = request.query_params.get(name)
        if value not in (None, ''):
            try:
                return int(value)
            except ValueError:
                raise serializers.ValidationError({name: 'A valid integer is required.'})
    return None


def _query_date(request, name):
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        raise serializers.ValidationError({name: 'Use the YYYY-MM-DD format.'})


class ToolViewSet(viewsets.ModelViewSet):
    """ViewSet for venue tools."""
    queryset = Tool.objects.all()
    serializer_class = ToolSerializer
    permission_classes = [IsAdminOrReadOnly]
    filterset_fields = ['name']


class VenueViewSet(SchedulingErrorMixin, viewsets.ModelViewSet):
    """ViewSet for venues; writes go through the venue catalogue."""
    serializer_class = VenueSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        """Filter venues based on query parameters."""
        params = self.request.query_params
        filters = {
            'search': params.get('search'),
            'location': params.get('location'),
            'min_capacity': _query_int(self.request, 'minCapacity', 'min_capacity'),
            'tool': _query_int(self.request, 'toolId', 'tool'),
        }
        if not is_admin_user(self.request.user):
            filters['is_active'] = True
        elif params.get('is_active') in ('true', 'false'):
            filters['is_active'] = params['is_active'] == 'true'
        return venue_catalog.list(filters)

    def perform_destroy(self, instance):
        venue_catalog.delete(instance.pk)


class AvailabilityWindowViewSet(SchedulingErrorMixin, viewsets.ModelViewSet):
    """ViewSet for admin-declared availability windows."""
    serializer_class = AvailabilityWindowSerializer
    permission_classes = [IsAdminOrReadOnly]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        return availability_store.windows_in_range(
            date_from=_query_date(self.request, 'from'),
            date_to=_query_date(self.request, 'to'),
            venue_id=_query_int(self.request, 'venueId', 'venue_id'),
        )

    def create(self, request, *args, **kwargs):
        """Create one window, or several from ``{"entries": [...]}``."""
        if isinstance(request.data, dict) and 'entries' in request.data:
            serializer = self.get_serializer(data=request.data['entries'], many=True)
            serializer.is_valid(raise_exception=True)
            windows = availability_store.add_windows(
                [AvailabilityWindowSerializer.store_kwargs(item) for item in serializer.validated_data],
                created_by=request.user,
            )
            return Response(self.get_serializer(windows, many=True).data, status=status.HTTP_201_CREATED)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        window = availability_store.add_window(
            created_by=request.user, **AvailabilityWindowSerializer.store_kwargs(serializer.validated_data)
        )
        return Response(self.get_serializer(window).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        window = availability_store.get_window(kwargs['pk'])
        serializer = self.get_serializer(window, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        window = availability_store.update_window(
            window.pk, **AvailabilityWindowSerializer.store_kwargs(serializer.validated_data)
        )
        return Response(self.get_serializer(availability_store.get_window(window.pk)).data)

    def destroy(self, request, *args, **kwargs):
        availability_store.delete_window(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], permission_classes=[permissions.IsAuthenticated])
    def check(self, request):
        """Optimistic legality check for a candidate booking; nothing is reserved."""
        serializer = AvailabilityCheckSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        evaluation = conflict_resolver.evaluate(data['venue_id'], data['date'], data['start'], data['end'])
        result = evaluation.to_dict()
        if evaluation.reason in (Overlap.code, NoAvailabilityWindow.code):
            result['alternatives'] = conflict_resolver.suggest_alternative_times(
                data['venue_id'], data['date'], data['end'] - data['start']
            )
        return Response(result)


class BookingViewSet(SchedulingErrorMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """
    Booking submission, decisions, the approval queue and "my bookings".

    POST submits a pending booking; PATCH with ``{outcome, note}`` decides it.
    """
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['status', 'date']
    http_method_names = ['get', 'post', 'patch', 'head', 'options']
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        if self.action == 'partial_update':
            return [permissions.IsAuthenticated(), IsAdminRole()]
        return super().get_permissions()

    def get_queryset(self):
        """Administrators see every booking; organisers see their own."""
        queryset = Booking.objects.select_related('venue', 'organiser', 'decided_by')
        if not is_admin_user(self.request.user):
            queryset = queryset.filter(organiser=self.request.user)

        venue_id = _query_int(self.request, 'venueId', 'venue_id')
        if venue_id:
            queryset = queryset.filter(venue_id=venue_id)
        date_from = _query_date(self.request, 'from')
        if date_from:
            queryset = queryset.filter(date__gte=date_from)
        date_to = _query_date(self.request, 'to')
        if date_to:
            queryset = queryset.filter(date__lte=date_to)

        return queryset.order_by('date', 'start_minute', 'pk')

    def create(self, request, *args, **kwargs):
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = approval_workflow.submit(
                request.user, data['venue_id'], data['date'], data['start'], data['end'],
                title=data['title'], description=data['description'],
            )
        except (Overlap, NoAvailabilityWindow) as e:
            logger.info(f"Booking request by {request.user.username} refused: {e.code}")
            body = e.to_dict()
            body['alternatives'] = conflict_resolver.suggest_alternative_times(
                data['venue_id'], data['date'], data['end'] - data['start']
            )
            return Response(body, status=e.status_code)

        return Response(self.get_serializer(booking).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = BookingDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = approval_workflow.decide(
            kwargs['pk'],
            serializer.validated_data['outcome'],
            note=serializer.validated_data['note'],
            decided_by=request.user,
        )
        return Response(self.get_serializer(booking).data)


class CalendarView(SchedulingErrorMixin, APIView):
    """Per-date calendar markers for a date range."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        serializer = CalendarQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        markers = calendar_projector.project(
            data['date_from'], data['date_to'], venue_id=data.get('venue_id')
        )
        return Response({day.isoformat(): value for day, value in markers.items()})


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """API viewset for user notifications."""
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['is_read', 'notification_type']

    def get_queryset(self):
        return Notification.objects.filter(
            user=self.request.user
        ).select_related('booking', 'venue').order_by('-created_at')

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        """Get count of unread notifications."""
        count = self.get_queryset().filter(is_read=False).count()
        return Response({'unread_count': count})

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        """Mark all notifications as read."""
        updated_count = notification_service.mark_notifications_as_read(request.user)
        return Response({
            'marked_read': updated_count,
            'message': f'Marked {updated_count} notifications as read'
        })

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        """Mark a specific notification as read."""
        notification = self.get_object()
        notification.mark_as_read()
        return Response({
            'status': 'read',
            'message': 'Notification marked as read'
        })
