from dataclasses import dataclass

from django.conf import settings
from django.db.models import Count

from .models import BookingOrder, PickupSlot


@dataclass(frozen=True)
class CapacityCheck:
    allowed: bool
    current_count: int
    limit: int

    @property
    def remaining(self):
        return max(0, self.limit - self.current_count)


class CapacityGate:
    """Per-pickup-date booking cap.

    ``check_and_reserve`` on its own is advisory. Submission calls ``lock``
    first inside its transaction so the recount and the insert that follows
    cannot interleave with another submission for the same date.
    """

    def __init__(self, limit=None):
        self.limit = settings.LAUNDRY_DAILY_CAPACITY if limit is None else limit

    def count(self, pickup_date):
        return BookingOrder.objects.holding_capacity().filter(pickup_date=pickup_date).count()

    def counts(self, dates):
        rows = (
            BookingOrder.objects.holding_capacity()
            .filter(pickup_date__in=dates)
            .values('pickup_date')
            .annotate(total=Count('id'))
        )
        found = {row['pickup_date']: row['total'] for row in rows}
        return {d: found.get(d, 0) for d in dates}

    def check_and_reserve(self, pickup_date):
        current = self.count(pickup_date)
        return CapacityCheck(allowed=current < self.limit, current_count=current, limit=self.limit)

    def lock(self, pickup_date):
        slot, _ = PickupSlot.objects.select_for_update().get_or_create(pickup_date=pickup_date)
        return slot
