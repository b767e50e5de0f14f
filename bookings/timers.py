import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .errors import ConcurrentModification, InvalidTransition
from .models import BookingOrder
from .store import conditional_update, load

logger = logging.getLogger(__name__)

ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class TimerState:
    status: str
    start_time: object
    duration_ms: int
    is_active: bool = True
    auto_advance_enabled: bool = False

    @property
    def deadline(self):
        return self.start_time + timedelta(milliseconds=self.duration_ms)


def remaining(timer_state, now=None):
    """Milliseconds left on ``timer_state`` at ``now``, floored at 0.

    Derived from the persisted start time only, so any process can recompute
    it after a restart.
    """
    now = now or timezone.now()
    elapsed_ms = max(0, (now - timer_state.start_time) // ONE_MS)
    return max(0, timer_state.duration_ms - elapsed_ms)


def default_duration_ms():
    return settings.LAUNDRY_PROCESSING_DURATION_MS


def timer_fields(status, now, duration_ms=None):
    if status in BookingOrder.TIMED_STATUSES:
        return {
            'timer_status': status,
            'timer_started_at': now,
            'timer_duration_ms': duration_ms or default_duration_ms(),
        }
    return {
        'timer_status': '',
        'timer_started_at': None,
        'timer_duration_ms': None,
    }


def state_of(order):
    if not order.has_timer():
        return None
    return TimerState(
        status=order.timer_status,
        start_time=order.timer_started_at,
        duration_ms=order.timer_duration_ms,
        is_active=not order.in_history,
        auto_advance_enabled=order.auto_advance_enabled,
    )


class ProcessingTimer:
    def __init__(self, machine=None, duration_ms=None):
        if machine is None:
            from .lifecycle import LifecycleStateMachine
            machine = LifecycleStateMachine()
        self.machine = machine
        self.duration_ms = duration_ms

    def start(self, order_id, status):
        order = load(order_id)
        if status not in BookingOrder.TIMED_STATUSES:
            raise InvalidTransition(f'{status} is not a timed processing status.', status=status)
        if order.status != status or order.in_history:
            raise InvalidTransition(
                f'Cannot start a {status} timer for order {order.pk} in {order.status}.',
                order_id=order.pk,
                status=order.status,
            )
        conditional_update(
            order,
            {'status': status, 'is_deleted': False, 'moved_to_history_at': None},
            **timer_fields(status, timezone.now(), self.duration_ms)
        )
        logger.info('timer started for order %s (%s)', order.pk, status)
        return state_of(order)

    def status(self, order_id, now=None):
        order = load(order_id)
        state = state_of(order)
        if state is None:
            return {
                'order_id': order.pk,
                'status': order.status,
                'is_active': False,
                'auto_advance_enabled': order.auto_advance_enabled,
            }
        return {
            'order_id': order.pk,
            'status': order.status,
            'is_active': state.is_active,
            'auto_advance_enabled': state.auto_advance_enabled,
            'timer_status': state.status,
            'start_time': state.start_time.isoformat(),
            'duration_ms': state.duration_ms,
            'remaining_ms': remaining(state, now),
        }

    def set_auto_advance(self, order_id, enabled):
        order = load(order_id)
        if order.auto_advance_enabled == enabled:
            return order
        conditional_update(order, {'auto_advance_enabled': order.auto_advance_enabled}, auto_advance_enabled=enabled)
        logger.info('auto-advance %s for order %s', 'enabled' if enabled else 'disabled', order.pk)
        return order

    def expired(self, now=None):
        now = now or timezone.now()
        candidates = BookingOrder.objects.live().filter(
            status__in=BookingOrder.TIMED_STATUSES,
            auto_advance_enabled=True,
            timer_started_at__isnull=False,
        ).order_by('timer_started_at')
        return [order for order in candidates if remaining(state_of(order), now) == 0]

    def expire(self, order_id, now=None):
        """Auto-advance an order whose timer ran out. Returns the new status or None."""
        order = load(order_id)
        state = state_of(order)
        if state is None or not state.is_active or not order.auto_advance_enabled:
            return None
        if remaining(state, now) > 0:
            return None

        try:
            advanced = self.machine.advance(order.pk, expected_status=state.status)
        except ConcurrentModification:
            logger.info('timer expiry for order %s already handled elsewhere', order.pk)
            return None
        return advanced.status

    def sweep(self, now=None):
        results = []
        for order in self.expired(now):
            new_status = self.expire(order.pk, now)
            if new_status is not None:
                results.append((order.pk, new_status))
        return results
