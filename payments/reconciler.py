import logging

from django.db import transaction
from django.utils import timezone

from bookings import events
from bookings.errors import InvalidSelection, InvalidState
from bookings.history import HistoryArchive
from bookings.models import BookingOrder
from bookings.store import conditional_update, load

logger = logging.getLogger(__name__)

APPROVED = 'approved'
REJECTED = 'rejected'
DECISIONS = (APPROVED, REJECTED)


class PaymentReconciler:
    """Payment method and payment status, kept apart from fulfillment status.

    GCash payments go unpaid -> gcash_pending on proof submission and are
    approved to paid or rejected back to unpaid by staff. Cash and card are
    marked paid or unpaid by hand.
    """

    def __init__(self, history=None):
        self.history = history or HistoryArchive()

    def _expected(self, order):
        return {'payment_status': order.payment_status, 'is_deleted': False, 'moved_to_history_at': None}

    def _require_open(self, order, action):
        if order.in_history:
            raise InvalidState(
                f'Order {order.pk} is in history; its payment can no longer be changed.',
                order_id=order.pk,
                action=action,
            )

    def submit_proof(self, order_id, reference, proof_image=''):
        reference = (reference or '').strip()
        if not reference:
            raise InvalidSelection('A GCash reference number is required.')

        with transaction.atomic():
            order = load(order_id)
            self._require_open(order, 'submit_proof')
            if order.payment_method != BookingOrder.GCASH:
                raise InvalidState(
                    f'Order {order.pk} is paid by {order.payment_method}, not GCash.',
                    order_id=order.pk,
                    payment_method=order.payment_method,
                )
            if order.payment_status != BookingOrder.UNPAID:
                raise InvalidState(
                    f'Cannot submit proof for order {order.pk} while payment is {order.payment_status}.',
                    order_id=order.pk,
                    payment_status=order.payment_status,
                )
            conditional_update(
                order,
                self._expected(order),
                payment_status=BookingOrder.GCASH_PENDING,
                payment_reference=reference,
                payment_proof_image=proof_image or '',
                payment_notes='',
            )
            logger.info('gcash proof submitted for order %s (ref %s)', order.pk, reference)
        return order

    def decide(self, order_id, decision, notes=''):
        if decision not in DECISIONS:
            raise InvalidSelection(f'Decision must be one of: {", ".join(DECISIONS)}.', decision=decision)

        with transaction.atomic():
            order = load(order_id)
            self._require_open(order, 'decide')
            if order.payment_status != BookingOrder.GCASH_PENDING:
                raise InvalidState(
                    f'Order {order.pk} has no GCash payment awaiting review.',
                    order_id=order.pk,
                    payment_status=order.payment_status,
                )

            if decision == APPROVED:
                changes = {'payment_status': BookingOrder.PAID, 'paid_at': timezone.now()}
            else:
                changes = {'payment_status': BookingOrder.UNPAID, 'paid_at': None}
            conditional_update(order, self._expected(order), payment_notes=notes or '', **changes)

            logger.info('gcash payment %s for order %s', decision, order.pk)
            events.emit(events.PAYMENT_DECIDED, order.pk, decision=decision, payment_status=order.payment_status)
            self.history.archive_if_settled(order)
        return order

    def _mark(self, order_id, payment_status):
        action = 'mark_paid' if payment_status == BookingOrder.PAID else 'mark_unpaid'
        with transaction.atomic():
            order = load(order_id)
            self._require_open(order, action)
            if order.payment_method == BookingOrder.GCASH:
                raise InvalidState(
                    f'Order {order.pk} is paid by GCash; review the submitted proof instead.',
                    order_id=order.pk,
                    payment_method=order.payment_method,
                )
            if order.payment_status == payment_status:
                return order

            paid_at = timezone.now() if payment_status == BookingOrder.PAID else None
            conditional_update(order, self._expected(order), payment_status=payment_status, paid_at=paid_at)
            logger.info('order %s marked %s', order.pk, payment_status)
            events.emit(events.PAYMENT_DECIDED, order.pk, decision=action, payment_status=payment_status)
            self.history.archive_if_settled(order)
        return order

    def mark_paid(self, order_id):
        return self._mark(order_id, BookingOrder.PAID)

    def mark_unpaid(self, order_id):
        return self._mark(order_id, BookingOrder.UNPAID)

    def change_method(self, order_id, method):
        if method not in dict(BookingOrder.PAYMENT_METHOD_CHOICES):
            raise InvalidSelection(f'Unknown payment method: {method}', payment_method=method)

        with transaction.atomic():
            order = load(order_id)
            self._require_open(order, 'change_method')
            if order.payment_method == method:
                return order
            if order.payment_status != BookingOrder.UNPAID:
                raise InvalidState(
                    f'Cannot change the payment method of order {order.pk} while payment is {order.payment_status}.',
                    order_id=order.pk,
                    payment_status=order.payment_status,
                )
            expected = self._expected(order)
            expected['payment_method'] = order.payment_method
            conditional_update(order, expected, payment_method=method)
            logger.info('order %s payment method set to %s', order.pk, method)
        return order

    def by_status(self, payment_status=None):
        qs = BookingOrder.objects.live()
        if payment_status:
            if payment_status not in dict(BookingOrder.PAYMENT_STATUS_CHOICES):
                raise InvalidSelection(f'Unknown payment status: {payment_status}', payment_status=payment_status)
            qs = qs.filter(payment_status=payment_status)
        return qs.order_by('created_at')
