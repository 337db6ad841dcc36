# booking/admin.py
"""
Django admin configuration for the Venue Booking.

Booking status is read-only here; decisions go through the approval
workflow so every approval is re-checked under the schedule lock.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from django.contrib import admin, messages

from .exceptions import SchedulingError
from .models import (
    AvailabilityWindow, Booking, BookingHistory, Notification, ScheduleKey,
    Tool, UserProfile, Venue,
)
from .workflow import approval_workflow


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'role', 'phone', 'created_at')
    list_filter = ('role',)
    search_fields = ('user__username', 'user__email', 'user__first_name', 'user__last_name')


@admin.register(Tool)
class ToolAdmin(admin.ModelAdmin):
    list_display = ('name', 'description')
    search_fields = ('name',)


@admin.register(Venue)
class VenueAdmin(admin.ModelAdmin):
    list_display = ('name', 'location', 'capacity', 'price', 'is_active')
    list_filter = ('is_active', 'tools')
    search_fields = ('name', 'location')
    filter_horizontal = ('tools',)
    readonly_fields = ('created_at', 'updated_at')


@admin.register(AvailabilityWindow)
class AvailabilityWindowAdmin(admin.ModelAdmin):
    list_display = ('date', 'start_time', 'end_time', 'venue_list', 'created_by')
    list_filter = ('date', 'venues')
    filter_horizontal = ('venues',)
    date_hierarchy = 'date'
    readonly_fields = ('created_by', 'created_at', 'updated_at')

    def venue_list(self, obj):
        return ', '.join(venue.name for venue in obj.venues.all())
    venue_list.short_description = 'Venues'


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'organiser', 'date', 'start_time', 'end_time', 'status')
    list_filter = ('status', 'venue')
    search_fields = ('title', 'description', 'organiser__username', 'venue__name')
    date_hierarchy = 'date'
    readonly_fields = ('status', 'decision_note', 'decided_by', 'decided_at', 'created_at', 'updated_at')

    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'description', 'venue', 'organiser')
        }),
        ('Scheduling', {
            'fields': ('date', 'start_minute', 'end_minute')
        }),
        ('Decision', {
            'fields': ('status', 'decision_note', 'decided_by', 'decided_at'),
        }),
        ('System Fields', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    actions = ['approve_selected']

    def approve_selected(self, request, queryset):
        """Approve pending bookings through the workflow."""
        approved = 0
        for booking in queryset.filter(status=Booking.STATUS_PENDING):
            try:
                approval_workflow.decide(booking.pk, Booking.STATUS_APPROVED, decided_by=request.user)
                approved += 1
            except SchedulingError as e:
                self.message_user(request, f"{booking}: {e.detail}", messages.WARNING)
        self.message_user(request, f"Approved {approved} booking(s).")
    approve_selected.short_description = "Approve selected pending bookings"


@admin.register(BookingHistory)
class BookingHistoryAdmin(admin.ModelAdmin):
    list_display = ('booking', 'action', 'user', 'timestamp')
    list_filter = ('action',)
    readonly_fields = ('booking', 'user', 'action', 'old_values', 'new_values', 'timestamp', 'notes')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'user', 'notification_type', 'priority', 'is_read', 'created_at')
    list_filter = ('notification_type', 'priority', 'is_read')
    search_fields = ('title', 'message', 'user__username')


@admin.register(ScheduleKey)
class ScheduleKeyAdmin(admin.ModelAdmin):
    list_display = ('venue', 'date', 'created_at')
    list_filter = ('venue',)
