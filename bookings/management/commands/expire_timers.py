from django.core.management.base import BaseCommand

from bookings.timers import ProcessingTimer


class Command(BaseCommand):
    help = 'Advance orders whose processing timer has run out and have auto-advance enabled'

    def handle(self, *args, **options):
        advanced = ProcessingTimer().sweep()
        if not advanced:
            self.stdout.write('No expired timers.')
            return

        for order_id, status in advanced:
            self.stdout.write(f'Order {order_id} advanced to {status}.')
        self.stdout.write(f'{len(advanced)} order(s) advanced.')
