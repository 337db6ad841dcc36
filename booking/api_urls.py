# booking/api_urls.py
"""
API URL configuration for the booking app.

This file is part of the Venue Booking.
Copyright (C) 2025 Venue Booking Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'venues', views.VenueViewSet, basename='venue')
router.register(r'tools', views.ToolViewSet)
router.register(r'availability', views.AvailabilityWindowViewSet, basename='availability')
router.register(r'bookings', views.BookingViewSet, basename='booking')
router.register(r'notifications', views.NotificationViewSet, basename='notification')

app_name = 'api'

urlpatterns = [
    path('', include(router.urls)),
    path('calendar/', views.CalendarView.as_view(), name='calendar'),
]
