# booking/serializers.py
"""
DRF serializers for the Venue Booking.

Times cross the API either as integer minutes since midnight or as
``"HH:MM"`` strings, and are returned in both forms (``start`` and
``start_time``). Request payloads may use camelCase keys (``venueId``).

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .catalog import venue_catalog
from .models import AvailabilityWindow, Booking, Notification, Tool, Venue
from .utils.time_utils import parse_minutes
from .workflow import normalize_outcome


class MinuteField(serializers.Field):
    """Time of day as minutes since midnight; accepts ints or "HH:MM"."""
    default_error_messages = {
        'invalid': 'Enter minutes since midnight or a time in HH:MM format (00:00-24:00).',
    }

    def to_internal_value(self, data):
        try:
            return parse_minutes(data)
        except ValueError:
            self.fail('invalid')

    def to_representation(self, value):
        return value


class AliasedInputMixin:
    """Accept camelCase request keys alongside the snake_case field names."""
    input_aliases = {
        'venueId': 'venue_id',
        'venueIds': 'venue_ids',
        'toolIds': 'tool_ids',
        'from': 'date_from',
        'to': 'date_to',
    }

    def to_internal_value(self, data):
        if hasattr(data, 'keys') and any(key in self.input_aliases for key in data.keys()):
            data = {self.input_aliases.get(key, key): data[key] for key in data.keys()}
        return super().to_internal_value(data)


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name']
        read_only_fields = ['id']


class ToolSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tool
        fields = ['id', 'name', 'description', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class VenueSerializer(AliasedInputMixin, serializers.ModelSerializer):
    tools = ToolSerializer(many=True, read_only=True)
    tool_ids = serializers.PrimaryKeyRelatedField(
        source='tools', queryset=Tool.objects.all(), many=True, required=False
    )

    class Meta:
        model = Venue
        fields = [
            'id', 'name', 'location', 'description', 'capacity', 'price',
            'tools', 'tool_ids', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def create(self, validated_data):
        tools = validated_data.pop('tools', None)
        try:
            return venue_catalog.create(tools=tools, **validated_data)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)

    def update(self, instance, validated_data):
        tools = validated_data.pop('tools', None)
        try:
            return venue_catalog.update(instance.pk, tools=tools, **validated_data)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)


class AvailabilityWindowSerializer(AliasedInputMixin, serializers.ModelSerializer):
    venue_ids = serializers.ListField(child=serializers.IntegerField(), min_length=1)
    start = MinuteField(source='start_minute')
    end = MinuteField(source='end_minute')
    start_time = serializers.CharField(read_only=True)
    end_time = serializers.CharField(read_only=True)

    class Meta:
        model = AvailabilityWindow
        fields = [
            'id', 'venue_ids', 'date', 'start', 'end', 'start_time', 'end_time',
            'notes', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']

    @staticmethod
    def store_kwargs(data):
        """Map validated data onto AvailabilityStore argument names."""
        return {
            'venue_ids': data.get('venue_ids'),
            'date': data.get('date'),
            'start': data.get('start_minute'),
            'end': data.get('end_minute'),
            'notes': data.get('notes'),
        }


class BookingSerializer(serializers.ModelSerializer):
    venue_id = serializers.IntegerField(read_only=True)
    venue_name = serializers.CharField(source='venue.name', read_only=True)
    organiser = UserSerializer(read_only=True)
    start = serializers.IntegerField(source='start_minute', read_only=True)
    end = serializers.IntegerField(source='end_minute', read_only=True)
    start_time = serializers.CharField(read_only=True)
    end_time = serializers.CharField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'venue_id', 'venue_name', 'organiser', 'title', 'description',
            'date', 'start', 'end', 'start_time', 'end_time', 'status',
            'decision_note', 'decided_by', 'decided_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class BookingRequestSerializer(AliasedInputMixin, serializers.Serializer):
    venue_id = serializers.IntegerField()
    date = serializers.DateField()
    start = MinuteField()
    end = MinuteField()
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='')


class BookingDecisionSerializer(serializers.Serializer):
    outcome = serializers.CharField()
    note = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_outcome(self, value):
        try:
            return normalize_outcome(value)
        except ValueError:
            raise serializers.ValidationError("Outcome must be 'approved' or 'declined'.")


class AvailabilityCheckSerializer(AliasedInputMixin, serializers.Serializer):
    venue_id = serializers.IntegerField()
    date = serializers.DateField()
    start = MinuteField()
    end = MinuteField()


class CalendarQuerySerializer(AliasedInputMixin, serializers.Serializer):
    date_from = serializers.DateField()
    date_to = serializers.DateField()
    venue_id = serializers.IntegerField(required=False)

    def validate(self, data):
        if data['date_to'] < data['date_from']:
            raise serializers.ValidationError("'to' must not be before 'from'.")
        max_days = getattr(settings, 'CALENDAR_MAX_RANGE_DAYS', 366)
        if (data['date_to'] - data['date_from']).days + 1 > max_days:
            raise serializers.ValidationError(f"Calendar range is limited to {max_days} days.")
        return data


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id', 'notification_type', 'title', 'message', 'priority', 'booking',
            'venue', 'metadata', 'is_read', 'read_at', 'created_at'
        ]
        read_only_fields = fields
