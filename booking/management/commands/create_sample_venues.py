# booking/management/commands/create_sample_venues.py
"""
Management command to create sample venues.

Seeds the tool catalogue, the campus venues and a couple of availability
windows so the calendar and booking flow can be tried straight away.
"""

from datetime import date
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from booking.availability import availability_store
from booking.catalog import venue_catalog
from booking.models import AvailabilityWindow, Tool, Venue


SAMPLE_TOOLS = [
    ('Chairs', 'Stackable seating'),
    ('Tables', 'Folding tables'),
    ('Microphones', 'Wireless handheld microphones'),
    ('Speakers', 'PA speakers with mixer'),
    ('Projectors', 'Data projector and screen'),
    ('Whiteboards', 'Mobile whiteboards'),
]

SAMPLE_VENUES = [
    {'name': 'Great Hall', 'location': 'Ga-Rankuwa Campus, Building 20', 'capacity': 150,
     'price': Decimal('5000'), 'tools': ['Chairs', 'Microphones', 'Speakers']},
    {'name': 'Architecture Wing', 'location': 'Pretoria, Building 11', 'capacity': 120,
     'price': Decimal('3000'), 'tools': ['Projectors', 'Whiteboards']},
    {'name': 'Library Center', 'location': 'Emalahleni Campus, Building 12', 'capacity': 70,
     'price': Decimal('4000'), 'tools': ['Tables', 'Chairs']},
    {'name': 'Innovation Lecture Hall', 'location': 'Polokwane Campus, Building 5', 'capacity': 92,
     'price': Decimal('4500'), 'tools': ['Projectors', 'Microphones']},
    {'name': 'Ruth First Hall', 'location': 'Soshanguve Campus, Building 18', 'capacity': 110,
     'price': Decimal('5200'), 'tools': ['Chairs', 'Speakers']},
    {'name': 'Sports Field', 'location': 'Main Campus, Outdoor', 'capacity': 300,
     'price': Decimal('7000'), 'tools': ['Speakers']},
    {'name': 'Building 18 Hall', 'location': 'Emalahleni Campus, Building 18', 'capacity': 200,
     'price': Decimal('19000'), 'tools': ['Chairs', 'Tables', 'Projectors']},
    {'name': 'Sports Field', 'location': 'Emalahleni Campus, Outdoor', 'capacity': 300,
     'price': Decimal('10000'), 'tools': []},
    {'name': 'Auditorium', 'location': 'Emalahleni Campus, Outdoor', 'capacity': 200,
     'price': Decimal('1650'), 'tools': ['Microphones', 'Projectors', 'Speakers']},
]

# (venue indexes into SAMPLE_VENUES, date, start, end)
SAMPLE_WINDOWS = [
    ([0, 2], date(2025, 11, 10), 9 * 60, 17 * 60),
    ([1], date(2025, 11, 11), 10 * 60, 14 * 60),
]


class Command(BaseCommand):
    help = 'Create sample tools, venues and availability windows'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Delete existing windows and unbooked venues first',
        )

    def handle(self, *args, **options):
        if options['force']:
            self.stdout.write('Deleting existing sample data...')
            for window in AvailabilityWindow.objects.all():
                availability_store.delete_window(window.pk)
            Venue.objects.filter(bookings__isnull=True).delete()

        with transaction.atomic():
            tools = {}
            for name, description in SAMPLE_TOOLS:
                tools[name], _ = Tool.objects.get_or_create(name=name, defaults={'description': description})

            venues = []
            created_count = 0
            for data in SAMPLE_VENUES:
                data = dict(data)
                tool_names = data.pop('tools')
                venue = Venue.objects.filter(name=data['name'], location=data['location']).first()
                if venue is None:
                    venue = venue_catalog.create(tools=[tools[n] for n in tool_names], **data)
                    created_count += 1
                venues.append(venue)

        window_count = 0
        for indexes, day, start, end in SAMPLE_WINDOWS:
            venue_ids = [venues[i].pk for i in indexes]
            if not AvailabilityWindow.objects.filter(
                date=day, start_minute=start, end_minute=end, venues__pk__in=venue_ids
            ).exists():
                availability_store.add_window(venue_ids, day, start, end, notes='Sample availability')
                window_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f'Created {created_count} venues and {window_count} availability windows '
                f'({len(tools)} tools available)'
            )
        )
