# booking/management/commands/audit_booking_overlaps.py
"""
Management command to audit approved bookings for overlaps.

Approved bookings of one venue on one date must never overlap. This
command reports any pair that does and exits non-zero when it finds one.
"""

from django.core.management.base import BaseCommand, CommandError

from booking.conflicts import conflict_resolver
from booking.utils.time_utils import parse_date


class Command(BaseCommand):
    help = 'Report approved bookings that overlap on the same venue and date'

    def add_arguments(self, parser):
        parser.add_argument('--venue', type=int, help='Only audit this venue id')
        parser.add_argument('--from', dest='date_from', help='First date to audit (YYYY-MM-DD)')
        parser.add_argument('--to', dest='date_to', help='Last date to audit (YYYY-MM-DD)')

    def handle(self, *args, **options):
        try:
            date_from = parse_date(options['date_from']) if options['date_from'] else None
            date_to = parse_date(options['date_to']) if options['date_to'] else None
        except ValueError as e:
            raise CommandError(f'Invalid date: {e}')

        conflicts = conflict_resolver.find_approved_overlaps(
            venue_id=options['venue'], date_from=date_from, date_to=date_to
        )

        if not conflicts:
            self.stdout.write(self.style.SUCCESS('No overlapping approved bookings found'))
            return

        for conflict in conflicts:
            self.stdout.write(self.style.ERROR(str(conflict)))
        raise CommandError(f'{len(conflicts)} overlapping approved booking pair(s) found')
