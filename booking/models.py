# booking/models.py
"""
Core models for the Venue Booking.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from django.db import models
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone

from .utils.time_utils import MINUTES_PER_DAY, format_minutes


class UserProfile(models.Model):
    """Extended user profile carrying the scheduling role."""
    ROLE_ADMIN = 'admin'
    ROLE_ORGANISER = 'organiser'
    ROLE_ATTENDEE = 'attendee'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_ORGANISER, 'Organiser'),
        (ROLE_ATTENDEE, 'Attendee'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_ORGANISER)
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_userprofile'

    def __str__(self):
        return f"{self.user.get_full_name() or self.user.username} ({self.role})"

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.user.is_staff


def is_admin_user(user):
    """Return True if the user may manage venues, windows and decisions."""
    if not user or not user.is_authenticated:
        return False
    if user.is_staff or user.is_superuser:
        return True
    try:
        return user.userprofile.is_admin
    except UserProfile.DoesNotExist:
        return False


class Tool(models.Model):
    """Equipment that can be associated with venues (projectors, PA systems...)."""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_tool'
        ordering = ['name']

    def __str__(self):
        return self.name


class Venue(models.Model):
    """Bookable physical space."""
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(
        max_digits=10, decimal_places=2, default=0,
        validators=[MinValueValidator(0)]
    )
    tools = models.ManyToManyField(Tool, blank=True, related_name='venues')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_venue'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(capacity__gt=0),
                name='venue_capacity_positive'
            )
        ]

    def __str__(self):
        return f"{self.name} ({self.location})"

    @property
    def tool_ids(self):
        return sorted(tool.pk for tool in self.tools.all())

    def active_bookings(self):
        """Pending or approved bookings referencing this venue."""
        return self.bookings.filter(status__in=Booking.ACTIVE_STATUSES)


class AvailabilityWindow(models.Model):
    """
    Admin-declared half-open interval [start, end) on a date during which
    the listed venues may be booked. Times are minutes since midnight.
    """
    venues = models.ManyToManyField(Venue, related_name='availability_windows')
    date = models.DateField(db_index=True)
    start_minute = models.PositiveSmallIntegerField(
        validators=[MaxValueValidator(MINUTES_PER_DAY)]
    )
    end_minute = models.PositiveSmallIntegerField(
        validators=[MaxValueValidator(MINUTES_PER_DAY)]
    )
    notes = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='availability_windows'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_availabilitywindow'
        ordering = ['date', 'start_minute', 'end_minute']
        indexes = [
            models.Index(fields=['date', 'start_minute'], name='window_date_start_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_minute__gt=models.F('start_minute')),
                name='window_end_after_start'
            ),
            models.CheckConstraint(
                condition=models.Q(end_minute__lte=MINUTES_PER_DAY),
                name='window_end_within_day'
            ),
        ]

    def __str__(self):
        return f"{self.date} {self.start_time}-{self.end_time}"

    def clean(self):
        if self.start_minute is not None and self.end_minute is not None:
            if self.start_minute >= self.end_minute:
                raise ValidationError("End time must be after start time.")

    @property
    def start_time(self):
        return format_minutes(self.start_minute)

    @property
    def end_time(self):
        return format_minutes(self.end_minute)

    @property
    def venue_ids(self):
        return sorted(venue.pk for venue in self.venues.all())


class Booking(models.Model):
    """An organiser's request to use a venue on a date and time range."""
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_DECLINED = 'declined'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending Approval'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_DECLINED, 'Declined'),
    ]
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)
    TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_DECLINED)

    venue = models.ForeignKey(Venue, on_delete=models.PROTECT, related_name='bookings')
    organiser = models.ForeignKey(User, on_delete=models.CASCADE, related_name='venue_bookings')
    title = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    date = models.DateField()
    start_minute = models.PositiveSmallIntegerField(
        validators=[MaxValueValidator(MINUTES_PER_DAY)]
    )
    end_minute = models.PositiveSmallIntegerField(
        validators=[MaxValueValidator(MINUTES_PER_DAY)]
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    decision_note = models.TextField(blank=True)
    decided_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='decided_bookings'
    )
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_booking'
        ordering = ['date', 'start_minute']
        indexes = [
            models.Index(fields=['venue', 'date', 'status'], name='booking_venue_date_status_idx'),
            models.Index(fields=['status', 'date'], name='booking_status_date_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_minute__gt=models.F('start_minute')),
                name='booking_end_after_start'
            ),
            models.CheckConstraint(
                condition=~models.Q(status='declined') | ~models.Q(decision_note=''),
                name='booking_declined_has_note'
            ),
        ]

    def __str__(self):
        label = self.title or f"Booking #{self.pk}"
        return f"{label} - {self.venue.name} ({self.date} {self.start_time}-{self.end_time})"

    def clean(self):
        """Validate booking constraints."""
        if self.start_minute is not None and self.end_minute is not None:
            if self.start_minute >= self.end_minute:
                raise ValidationError("End time must be after start time.")
        if self.status == self.STATUS_DECLINED and not self.decision_note.strip():
            raise ValidationError("A declined booking requires a decision note.")

    @property
    def start_time(self):
        return format_minutes(self.start_minute)

    @property
    def end_time(self):
        return format_minutes(self.end_minute)

    @property
    def duration_minutes(self):
        return self.end_minute - self.start_minute

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def overlaps(self, start, end):
        """Half-open overlap test against [start, end)."""
        return self.start_minute < end and start < self.end_minute


class ScheduleKey(models.Model):
    """
    One row per (venue, date). Writers lock the row with SELECT ... FOR UPDATE
    so that commits touching the same key serialize across processes.
    """
    venue = models.ForeignKey(Venue, on_delete=models.CASCADE, related_name='schedule_keys')
    date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'booking_schedulekey'
        constraints = [
            models.UniqueConstraint(fields=['venue', 'date'], name='unique_schedule_key'),
        ]

    def __str__(self):
        return f"{self.venue_id}@{self.date}"


class BookingHistory(models.Model):
    """Audit trail for booking changes."""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=50)
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'booking_bookinghistory'
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.action} booking {self.booking_id}"


class Notification(models.Model):
    """In-app notification created from engine events."""
    NOTIFICATION_TYPES = [
        ('booking_submitted', 'Booking Submitted'),
        ('booking_approved', 'Booking Approved'),
        ('booking_declined', 'Booking Declined'),
        ('window_changed', 'Availability Changed'),
        ('venue_changed', 'Venue Changed'),
    ]
    PRIORITY_LEVELS = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    priority = models.CharField(max_length=10, choices=PRIORITY_LEVELS, default='medium')
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, null=True, blank=True)
    venue = models.ForeignKey(Venue, on_delete=models.SET_NULL, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'booking_notification'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
            models.Index(fields=['created_at'], name='notification_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.user.username}"

    def mark_as_read(self):
        """Mark notification as read."""
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=['is_read', 'read_at'])
