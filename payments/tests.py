from django.test import TestCase, Client
from datetime import date
import json

from bookings import events
from bookings.errors import InvalidSelection, InvalidState
from bookings.lifecycle import BookingSubmission, LifecycleStateMachine
from bookings.models import BookingOrder
from .reconciler import PaymentReconciler


def create_order(payment_method='cash', **overrides):
    data = {
        'customer_name': 'Jose Reyes',
        'customer_contact': '09181234567',
        'street': '4 Mabini St',
        'barangay': 'Lecheria',
        'main_service': 'washDryFold',
        'pickup_date': date(2026, 11, 21),
        'pickup_time': '5pm-7pm',
        'load_count': 2,
        'payment_method': payment_method,
    }
    data.update(overrides)
    return LifecycleStateMachine().submit(BookingSubmission(**data))


def complete_order(order):
    machine = LifecycleStateMachine()
    machine.approve(order.pk)
    machine.start_order(order.pk)
    for _ in range(5):
        order = machine.advance(order.pk)
    return order


class PaymentTestCase(TestCase):
    def setUp(self):
        self.client = Client()
        self.reconciler = PaymentReconciler()

    def post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')


class GCashProofTest(PaymentTestCase):
    def setUp(self):
        super().setUp()
        self.order = create_order(payment_method='gcash')

    def test_submit_proof_moves_payment_to_review(self):
        response = self.post(f'/api/payments/{self.order.pk}/proof/', {
            'reference': '1012345678901',
            'proof_image': 'proofs/1012345678901.jpg',
        })

        self.assertEqual(response.status_code, 200)
        booking = response.json()['booking']
        self.assertEqual(booking['payment_status'], 'gcash_pending')
        self.assertEqual(booking['payment_reference'], '1012345678901')
        self.assertEqual(booking['status'], 'pending_booking')

    def test_approved_proof_marks_order_paid(self):
        self.reconciler.submit_proof(self.order.pk, '1012345678901')
        response = self.post(f'/api/payments/{self.order.pk}/decide/', {'decision': 'approved'})

        self.assertEqual(response.status_code, 200)
        booking = response.json()['booking']
        self.assertEqual(booking['payment_status'], 'paid')
        self.assertIsNotNone(booking['paid_at'])

    def test_rejected_proof_returns_to_unpaid(self):
        self.reconciler.submit_proof(self.order.pk, '1012345678901')
        response = self.post(f'/api/payments/{self.order.pk}/decide/', {
            'decision': 'rejected',
            'notes': 'Reference not found',
        })

        self.assertEqual(response.status_code, 200)
        booking = response.json()['booking']
        self.assertEqual(booking['payment_status'], 'unpaid')
        self.assertEqual(booking['payment_notes'], 'Reference not found')

        order = self.reconciler.submit_proof(self.order.pk, '1019999999999')
        self.assertEqual(order.payment_status, 'gcash_pending')

    def test_proof_requires_reference(self):
        response = self.post(f'/api/payments/{self.order.pk}/proof/', {'reference': '  '})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'invalid_selection')

    def test_second_proof_while_pending_is_refused(self):
        self.reconciler.submit_proof(self.order.pk, '1012345678901')
        response = self.post(f'/api/payments/{self.order.pk}/proof/', {'reference': '1012345678902'})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'invalid_state')

    def test_decide_without_pending_proof_is_refused(self):
        with self.assertRaises(InvalidState):
            self.reconciler.decide(self.order.pk, 'approved')

    def test_unknown_decision_is_rejected(self):
        with self.assertRaises(InvalidSelection):
            self.reconciler.decide(self.order.pk, 'maybe')

        response = self.post(f'/api/payments/{self.order.pk}/decide/', {'decision': 'maybe'})
        self.assertEqual(response.status_code, 400)

    def test_gcash_order_cannot_be_marked_paid_by_hand(self):
        response = self.post(f'/api/payments/{self.order.pk}/mark-paid/')

        self.assertEqual(response.status_code, 409)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, 'unpaid')

    def test_approval_of_completed_order_archives_it(self):
        complete_order(self.order)
        self.reconciler.submit_proof(self.order.pk, '1012345678901')

        with self.captureOnCommitCallbacks() as callbacks:
            order = self.reconciler.decide(self.order.pk, 'approved')

        self.assertTrue(order.is_archived)
        self.assertEqual(len(callbacks), 2)


class CashPaymentTest(PaymentTestCase):
    def setUp(self):
        super().setUp()
        self.order = create_order()

    def test_proof_for_cash_order_is_refused(self):
        response = self.post(f'/api/payments/{self.order.pk}/proof/', {'reference': '1012345678901'})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'invalid_state')

    def test_mark_paid_and_unpaid(self):
        response = self.post(f'/api/payments/{self.order.pk}/mark-paid/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking']['payment_status'], 'paid')

        response = self.post(f'/api/payments/{self.order.pk}/mark-unpaid/')
        self.assertEqual(response.status_code, 200)
        booking = response.json()['booking']
        self.assertEqual(booking['payment_status'], 'unpaid')
        self.assertIsNone(booking['paid_at'])

    def test_mark_paid_is_idempotent(self):
        self.reconciler.mark_paid(self.order.pk)
        with self.captureOnCommitCallbacks() as callbacks:
            order = self.reconciler.mark_paid(self.order.pk)

        self.assertEqual(order.payment_status, 'paid')
        self.assertEqual(len(callbacks), 0)

    def test_paid_before_completion_is_archived_on_completion(self):
        self.reconciler.mark_paid(self.order.pk)
        order = complete_order(self.order)

        self.assertEqual(order.status, 'completed')
        self.assertTrue(order.is_archived)

    def test_completed_order_is_archived_once_paid(self):
        complete_order(self.order)
        order = self.reconciler.mark_paid(self.order.pk)

        self.assertTrue(order.is_archived)
        with self.assertRaises(InvalidState):
            self.reconciler.mark_unpaid(self.order.pk)

    def test_change_method_while_unpaid(self):
        response = self.post(f'/api/payments/{self.order.pk}/method/', {'payment_method': 'gcash'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking']['payment_method'], 'gcash')

    def test_change_method_after_payment_is_refused(self):
        self.reconciler.mark_paid(self.order.pk)

        with self.assertRaises(InvalidState):
            self.reconciler.change_method(self.order.pk, 'card')


class PaymentListTest(PaymentTestCase):
    def test_list_by_payment_status(self):
        paid = create_order()
        create_order()
        pending = create_order(payment_method='gcash')
        self.reconciler.mark_paid(paid.pk)
        self.reconciler.submit_proof(pending.pk, '1012345678901')

        response = self.client.get('/api/payments/?status=gcash_pending')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([b['id'] for b in response.json()['results']], [pending.pk])

        response = self.client.get('/api/payments/')
        self.assertEqual(len(response.json()['results']), 3)

    def test_unknown_payment_status_is_rejected(self):
        response = self.client.get('/api/payments/?status=refunded')
        self.assertEqual(response.status_code, 400)

    def test_missing_order_returns_404(self):
        response = self.post('/api/payments/999/mark-paid/')
        self.assertEqual(response.status_code, 404)


class PaymentEventTest(PaymentTestCase):
    def test_decision_emits_payment_event(self):
        order = create_order(payment_method='gcash')
        self.reconciler.submit_proof(order.pk, '1012345678901')

        payload = events.build_payload(events.PAYMENT_DECIDED, order.pk, decision='approved')
        self.assertEqual(payload['event'], 'paymentDecided')

        with self.captureOnCommitCallbacks() as callbacks:
            self.reconciler.decide(order.pk, 'approved')
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(BookingOrder.objects.get(pk=order.pk).payment_status, 'paid')
