"""Lifecycle of a booking from submission to completion.

Every transition is a conditional write keyed on the status the caller saw,
so two staff members acting on the same order cannot both win. Re-issuing
a transition whose target status already holds is a successful no-op.
"""
import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone

from . import events
from .capacity import CapacityGate
from .catalog import PICKUP_AND_DELIVERY, PICKUP_TIME_CHOICES, find_barangay
from .errors import CapacityExceeded, InvalidSelection, InvalidTransition
from .history import HistoryArchive
from .models import BookingOrder
from .pricing import DeliveryFeeResolver, PricingCalculator, dedupe_add_ons, price_order
from .store import conditional_update, load
from .timers import timer_fields

logger = logging.getLogger(__name__)

S = BookingOrder

TRANSITIONS = {
    'approve': ((S.PENDING_BOOKING,), S.APPROVED),
    'reject': ((S.PENDING_BOOKING,), S.REJECTED),
    'cancel': ((S.PENDING_BOOKING,), S.CANCELLED),
    'start_order': ((S.APPROVED,), S.PENDING),
    'complete': ((S.READY,), S.COMPLETED),
}

NEXT_STATUS = dict(zip(S.PROCESSING_SEQUENCE, S.PROCESSING_SEQUENCE[1:] + [S.COMPLETED]))

REPRICE_FIELDS = ('main_service', 'add_ons', 'load_count', 'service_option', 'add_on_prices')


@dataclass
class BookingSubmission:
    customer_name: str
    customer_contact: str
    street: str
    barangay: str
    main_service: str
    pickup_date: object
    pickup_time: str
    load_count: int = 1
    add_ons: list = field(default_factory=list)
    service_option: str = PICKUP_AND_DELIVERY
    payment_method: str = S.CASH
    customer_email: str = ''
    block_lot: str = ''
    landmark: str = ''
    instructions: str = ''


def _require_active(order, action):
    if order.in_history:
        raise InvalidTransition(
            f'Order {order.pk} is in history; restore it before trying to {action}.',
            order_id=order.pk,
            action=action,
        )


def _expected(order):
    return {'status': order.status, 'is_deleted': False, 'moved_to_history_at': None}


class LifecycleStateMachine:
    def __init__(self, capacity=None, calculator=None, resolver=None, history=None):
        self.capacity = capacity or CapacityGate()
        self.calculator = calculator or PricingCalculator()
        self.resolver = resolver or DeliveryFeeResolver()
        self.history = history or HistoryArchive(self.capacity)

    def submit(self, submission):
        if not (submission.customer_name or '').strip() or not (submission.customer_contact or '').strip():
            raise InvalidSelection('Customer name and contact are required.')
        if not (submission.street or '').strip():
            raise InvalidSelection('Street address is required.')
        if submission.pickup_date is None:
            raise InvalidSelection('A pickup date is required.')
        barangay = find_barangay(submission.barangay)
        if barangay is None:
            raise InvalidSelection(f'Unknown barangay: {submission.barangay}', barangay=submission.barangay)
        if submission.pickup_time not in dict(PICKUP_TIME_CHOICES):
            raise InvalidSelection(f'Unknown pickup time: {submission.pickup_time}', pickup_time=submission.pickup_time)
        if submission.payment_method not in dict(S.PAYMENT_METHOD_CHOICES):
            raise InvalidSelection(f'Unknown payment method: {submission.payment_method}')

        order = BookingOrder(
            status=S.PENDING_BOOKING,
            customer_name=submission.customer_name.strip(),
            customer_contact=submission.customer_contact.strip(),
            customer_email=(submission.customer_email or '').strip(),
            street=submission.street.strip(),
            block_lot=(submission.block_lot or '').strip(),
            landmark=(submission.landmark or '').strip(),
            barangay=barangay,
            main_service=submission.main_service,
            add_ons=dedupe_add_ons(submission.add_ons),
            load_count=submission.load_count,
            service_option=submission.service_option,
            pickup_date=submission.pickup_date,
            pickup_time=submission.pickup_time,
            instructions=submission.instructions or '',
            payment_method=submission.payment_method,
        )
        snapshot = price_order(order, self.calculator, self.resolver)
        for name, value in snapshot.as_fields().items():
            setattr(order, name, value)

        with transaction.atomic():
            self.capacity.lock(submission.pickup_date)
            check = self.capacity.check_and_reserve(submission.pickup_date)
            if not check.allowed:
                logger.warning('pickup date %s is full (%s bookings)', submission.pickup_date, check.current_count)
                raise CapacityExceeded(
                    f'{submission.pickup_date} is fully booked. Maximum {check.limit} bookings per day allowed.',
                    pickup_date=str(submission.pickup_date),
                    current_count=check.current_count,
                )
            order.save()
            logger.info('booking %s submitted for %s', order.pk, order.pickup_date)
            events.emit(events.CREATED, order.pk, status=order.status, pickup_date=str(order.pickup_date))
        return order

    def _transition(self, order_id, action, **changes):
        sources, target = TRANSITIONS[action]
        with transaction.atomic():
            order = load(order_id)
            if order.status == target and not order.is_deleted:
                return order
            _require_active(order, action)
            if order.status not in sources:
                raise InvalidTransition(
                    f'Cannot {action} an order in {order.status}.',
                    order_id=order.pk,
                    status=order.status,
                    action=action,
                )
            return self._move(order, target, **changes)

    def _move(self, order, target, **changes):
        previous = order.status
        now = timezone.now()
        changes.update(timer_fields(target, now))
        if target in S.RELEASED_STATUSES:
            changes['moved_to_history_at'] = now
        conditional_update(order, _expected(order), status=target, updated_at=now, **changes)

        logger.info('order %s %s -> %s', order.pk, previous, target)
        events.emit(events.STATUS_CHANGED, order.pk, previous_status=previous, status=target)
        if target in S.RELEASED_STATUSES:
            events.emit(events.ARCHIVED, order.pk, reason=target)
        self.history.archive_if_settled(order)
        return order

    def approve(self, order_id):
        return self._transition(order_id, 'approve')

    def reject(self, order_id, reason):
        reason = (reason or '').strip()
        if not reason:
            raise InvalidSelection('A rejection reason is required.')
        return self._transition(order_id, 'reject', rejection_reason=reason)

    def cancel(self, order_id):
        return self._transition(order_id, 'cancel')

    def start_order(self, order_id):
        return self._transition(order_id, 'start_order')

    def complete(self, order_id):
        return self._transition(order_id, 'complete')

    def advance(self, order_id, expected_status=None):
        """Move an order one step along pending, washing, drying, folding, ready.

        Advancing a ``ready`` order completes it, same as ``complete``.
        ``expected_status`` makes the call safe to repeat: once the order has
        moved past it, the call returns the order unchanged.
        """
        with transaction.atomic():
            order = load(order_id)
            if expected_status is not None and not order.is_deleted and self._is_past(order.status, expected_status):
                return order
            _require_active(order, 'advance')

            if expected_status is not None and order.status != expected_status:
                raise InvalidTransition(
                    f'Order {order.pk} is in {order.status}, not {expected_status}.',
                    order_id=order.pk,
                    status=order.status,
                    expected_status=expected_status,
                )

            target = NEXT_STATUS.get(order.status)
            if target is None:
                raise InvalidTransition(
                    f'Cannot advance an order in {order.status}.',
                    order_id=order.pk,
                    status=order.status,
                )
            return self._move(order, target)

    @staticmethod
    def _is_past(current, expected):
        sequence = S.PROCESSING_SEQUENCE + [S.COMPLETED]
        if current not in sequence or expected not in sequence:
            return False
        return sequence.index(current) > sequence.index(expected)

    def soft_delete(self, order_id):
        with transaction.atomic():
            order = load(order_id)
            if order.is_deleted:
                return order
            if order.status in S.TERMINAL_STATUSES or order.is_archived:
                raise InvalidTransition(
                    f'Order {order.pk} in {order.status} is already final and cannot be deleted.',
                    order_id=order.pk,
                    status=order.status,
                )
            now = timezone.now()
            conditional_update(order, _expected(order), is_deleted=True, deleted_at=now, updated_at=now)
            logger.info('order %s soft-deleted', order.pk)
            events.emit(events.ARCHIVED, order.pk, reason='deleted')
        return order

    def restore(self, order_id):
        return self.history.restore(order_id)

    def reprice(self, order_id, **changes):
        unknown = set(changes) - set(REPRICE_FIELDS)
        if unknown:
            raise InvalidSelection(f'Cannot reprice using {", ".join(sorted(unknown))}.')

        with transaction.atomic():
            order = load(order_id)
            _require_active(order, 'reprice')
            if order.status in S.TERMINAL_STATUSES:
                raise InvalidTransition(
                    f'Cannot change pricing of an order in {order.status}.',
                    order_id=order.pk,
                    status=order.status,
                )

            expected = _expected(order)
            if 'add_ons' in changes:
                changes['add_ons'] = dedupe_add_ons(changes['add_ons'])
            if 'add_on_prices' in changes:
                overrides = changes['add_on_prices'] or {}
                selected = changes.get('add_ons', order.add_ons)
                unselected = sorted(set(overrides) - set(selected))
                if unselected:
                    raise InvalidSelection(
                        f'Cannot price add-ons that are not selected: {", ".join(unselected)}.',
                        add_ons=unselected,
                    )
                merged = dict(order.add_on_prices)
                merged.update(overrides)
                changes['add_on_prices'] = merged

            for name, value in changes.items():
                setattr(order, name, value)
            snapshot = price_order(order, self.calculator, self.resolver)

            fields = {name: getattr(order, name) for name in changes if name != 'add_on_prices'}
            fields.update(snapshot.as_fields())
            conditional_update(order, expected, **fields)
            logger.info('order %s repriced to %s', order.pk, order.total_price_centavos)
        return order
