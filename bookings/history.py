import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from . import events
from .capacity import CapacityGate
from .errors import CapacityExceeded, InvalidSelection, InvalidTransition
from .models import BookingOrder
from .store import conditional_update, load
from .timers import timer_fields

logger = logging.getLogger(__name__)

HISTORY_KINDS = ('completed', 'rejected', 'cancelled', 'deleted')


class HistoryArchive:
    def __init__(self, capacity=None):
        self.capacity = capacity or CapacityGate()

    def archive_if_settled(self, order):
        """Move a completed and paid order to history. Returns True if it moved."""
        if order.in_history or not order.is_settled:
            return False

        now = timezone.now()
        updated = BookingOrder.objects.filter(
            pk=order.pk,
            status=BookingOrder.COMPLETED,
            payment_status=BookingOrder.PAID,
            is_deleted=False,
            moved_to_history_at__isnull=True,
        ).update(moved_to_history_at=now, updated_at=now)
        if not updated:
            return False

        order.moved_to_history_at = now
        order.updated_at = now
        logger.info('order %s archived (completed and paid)', order.pk)
        events.emit(events.ARCHIVED, order.pk, reason='settled')
        return True

    def restore(self, order_id):
        with transaction.atomic():
            order = load(order_id)
            if not order.in_history:
                return order

            if order.is_deleted or order.status in BookingOrder.RELEASED_STATUSES:
                self._reserve(order)

            now = timezone.now()
            changes = {'is_deleted': False, 'deleted_at': None, 'moved_to_history_at': None, 'updated_at': now}
            if order.status in BookingOrder.RELEASED_STATUSES:
                changes['status'] = BookingOrder.PENDING_BOOKING
                changes['rejection_reason'] = ''
            elif order.status in BookingOrder.TIMED_STATUSES:
                changes.update(timer_fields(order.status, now, order.timer_duration_ms))

            previous_status = order.status
            conditional_update(
                order,
                {
                    'status': order.status,
                    'is_deleted': order.is_deleted,
                    'moved_to_history_at': order.moved_to_history_at,
                },
                **changes
            )
            logger.info('order %s restored from history as %s', order.pk, order.status)
            events.emit(events.RESTORED, order.pk, previous_status=previous_status, status=order.status)
        return order

    def _reserve(self, order):
        self.capacity.lock(order.pickup_date)
        check = self.capacity.check_and_reserve(order.pickup_date)
        if not check.allowed:
            logger.warning('cannot restore order %s, %s is full', order.pk, order.pickup_date)
            raise CapacityExceeded(
                f'{order.pickup_date} is fully booked. Maximum {check.limit} bookings per day allowed.',
                order_id=order.pk,
                pickup_date=str(order.pickup_date),
                current_count=check.current_count,
            )

    def purge(self, order_id):
        with transaction.atomic():
            order = load(order_id)
            if not order.in_history:
                raise InvalidTransition(
                    f'Order {order.pk} is still active; delete or archive it before purging.',
                    order_id=order.pk,
                )
            deleted, _ = BookingOrder.objects.filter(pk=order.pk).delete()
            if deleted:
                logger.info('order %s purged', order_id)
                events.emit(events.PURGED, order_id)
        return order_id

    def list(self, kind=None):
        qs = BookingOrder.objects.in_history()
        if kind is None or kind == '':
            pass
        elif kind == 'deleted':
            qs = qs.filter(is_deleted=True)
        elif kind in HISTORY_KINDS:
            qs = qs.filter(is_deleted=False, status=kind)
        else:
            raise InvalidSelection(f'Unknown history type: {kind}', kind=kind)
        return qs.order_by(
            F('moved_to_history_at').desc(nulls_last=True),
            F('deleted_at').desc(nulls_last=True),
        )
