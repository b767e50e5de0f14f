from django.test import TestCase, Client, RequestFactory, override_settings
from django.contrib import admin
from django.contrib.messages.storage.fallback import FallbackStorage
from django.core.management import call_command
from django.utils import timezone
from unittest.mock import patch, MagicMock
from datetime import date, timedelta
from io import StringIO
import json

import requests

from . import events
from .capacity import CapacityGate
from .catalog import find_barangay
from .errors import CapacityExceeded, ConcurrentModification, InvalidSelection, InvalidTransition
from .history import HistoryArchive
from .lifecycle import BookingSubmission, LifecycleStateMachine
from .models import BookingOrder
from .pricing import DeliveryFeeResolver, PricingCalculator
from .store import conditional_update
from .timers import ProcessingTimer, TimerState, remaining
from payments.reconciler import PaymentReconciler

PICKUP_DATE = date(2026, 11, 20)


def submission(**overrides):
    data = {
        'customer_name': 'Maria Santos',
        'customer_contact': '09171234567',
        'street': '12 Rizal St',
        'barangay': 'Barangay 1',
        'main_service': 'fullService',
        'pickup_date': PICKUP_DATE,
        'pickup_time': '7am-10am',
        'load_count': 2,
    }
    data.update(overrides)
    return BookingSubmission(**data)


def booking_payload(**overrides):
    payload = {
        'customer_name': 'Maria Santos',
        'customer_contact': '09171234567',
        'street': '12 Rizal St',
        'barangay': 'Barangay 1',
        'main_service': 'fullService',
        'load_count': 2,
        'service_option': 'pickupAndDelivery',
        'pickup_date': PICKUP_DATE.isoformat(),
        'pickup_time': '7am-10am',
        'payment_method': 'cash',
    }
    payload.update(overrides)
    return payload


class EngineTestCase(TestCase):
    def setUp(self):
        self.client = Client()
        self.machine = LifecycleStateMachine()

    def post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def submit(self, **overrides):
        return self.machine.submit(submission(**overrides))

    def to_ready(self, order):
        self.machine.approve(order.pk)
        self.machine.start_order(order.pk)
        for _ in range(4):
            order = self.machine.advance(order.pk)
        return order


class PricingTest(TestCase):
    def setUp(self):
        self.calculator = PricingCalculator()
        self.resolver = DeliveryFeeResolver(standard_fee_centavos=3000)

    def test_pricing_is_deterministic(self):
        first = self.calculator.price('fullService', ['dryCleanGown'], 3, 'pickupAndDelivery', 3000,
                                      add_on_prices={'dryCleanGown': 65000})
        second = self.calculator.price('fullService', ['dryCleanGown'], 3, 'pickupAndDelivery', 3000,
                                       add_on_prices={'dryCleanGown': 65000})
        self.assertEqual(first, second)
        self.assertEqual(first.total_price_centavos, 19900 * 3 + 65000 + 3000)

    def test_total_is_sum_of_parts(self):
        snapshot = self.calculator.price('washDryFold', ['dryCleanBarong', 'dryCleanCoat'], 2, 'pickupAndDelivery',
                                         3000, add_on_prices={'dryCleanBarong': 35000})
        self.assertEqual(snapshot.main_service_price_centavos, 35800)
        self.assertEqual(snapshot.add_on_prices, {'dryCleanBarong': 35000, 'dryCleanCoat': 0})
        self.assertEqual(snapshot.total_price_centavos, 35800 + 35000 + 0 + 3000)

    def test_pickup_only_has_no_delivery_fee(self):
        snapshot = self.calculator.price('fullService', [], 1, 'pickupOnly', 3000)
        self.assertEqual(snapshot.delivery_fee_centavos, 0)
        self.assertEqual(snapshot.total_price_centavos, 19900)

    def test_duplicate_add_ons_are_counted_once(self):
        snapshot = self.calculator.price('fullService', ['dryCleanCoat', 'dryCleanCoat'], 1, 'pickupOnly', 0,
                                         add_on_prices={'dryCleanCoat': 40000})
        self.assertEqual(list(snapshot.add_on_prices), ['dryCleanCoat'])
        self.assertEqual(snapshot.total_price_centavos, 19900 + 40000)

    def test_invalid_selections_are_rejected(self):
        with self.assertRaises(InvalidSelection):
            self.calculator.price('', [], 1, 'pickupOnly', 0)
        with self.assertRaises(InvalidSelection):
            self.calculator.price('ironOnly', [], 1, 'pickupOnly', 0)
        with self.assertRaises(InvalidSelection):
            self.calculator.price('fullService', [], 0, 'pickupOnly', 0)
        with self.assertRaises(InvalidSelection):
            self.calculator.price('fullService', ['starch'], 1, 'pickupOnly', 0)
        with self.assertRaises(InvalidSelection):
            self.calculator.price('fullService', ['dryCleanGown'], 1, 'pickupOnly', 0,
                                  add_on_prices={'dryCleanGown': -100})

    def test_free_delivery_from_two_loads(self):
        self.assertEqual(self.resolver.resolve('Barangay 1', 2), 0)
        self.assertEqual(self.resolver.resolve('  barangay   1 ', 5), 0)
        self.assertEqual(self.resolver.resolve('Barangay 1', 1), 3000)

    def test_alternate_spelling_gets_free_delivery(self):
        self.assertEqual(self.resolver.resolve('Palingong', 2), 0)
        self.assertEqual(self.resolver.resolve('Palingon', 2), 0)
        self.assertEqual(find_barangay('palingong'), 'Palingon')

    def test_special_and_standard_fees(self):
        self.assertEqual(self.resolver.resolve('Mapagong', 2), 3000)
        self.assertEqual(self.resolver.resolve('La Mesa', 1), 3000)
        self.assertEqual(self.resolver.resolve('Canlubang', 4), 3000)
        self.assertEqual(self.resolver.resolve('Nowhere', 4), 3000)

    def test_resolver_uses_configured_tables(self):
        resolver = DeliveryFeeResolver(standard_fee_centavos=5000, free_barangays=['Pansol'],
                                       special_fees={'Bucal': 4500})
        self.assertEqual(resolver.resolve('Pansol', 2), 0)
        self.assertEqual(resolver.resolve('Bucal', 2), 4500)
        self.assertEqual(resolver.resolve('Barangay 1', 2), 5000)


class BookingSubmissionTest(EngineTestCase):
    def test_submit_booking_prices_and_stores_order(self):
        response = self.post('/api/bookings/', booking_payload())

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertIn('booking_id', data)
        booking = data['booking']
        self.assertEqual(booking['status'], 'pending_booking')
        self.assertEqual(booking['main_service_price_centavos'], 39800)
        self.assertEqual(booking['delivery_fee_centavos'], 0)
        self.assertEqual(booking['total_price_centavos'], 39800)
        self.assertEqual(booking['payment_status'], 'unpaid')

        order = BookingOrder.objects.get(id=data['booking_id'])
        self.assertEqual(order.barangay, 'Barangay 1')
        self.assertEqual(order.pickup_date, PICKUP_DATE)

    def test_single_load_pays_delivery_fee(self):
        response = self.post('/api/bookings/', booking_payload(load_count=1))

        self.assertEqual(response.status_code, 201)
        booking = response.json()['booking']
        self.assertEqual(booking['delivery_fee_centavos'], 3000)
        self.assertEqual(booking['total_price_centavos'], 22900)

    def test_barangay_name_is_canonicalised(self):
        order = self.submit(barangay='  la   mesa ')
        self.assertEqual(order.barangay, 'La Mesa')
        self.assertEqual(order.delivery_fee_centavos, 3000)

    def test_unknown_barangay_is_rejected(self):
        response = self.post('/api/bookings/', booking_payload(barangay='Atlantis'))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'invalid_selection')
        self.assertEqual(BookingOrder.objects.count(), 0)

    def test_missing_fields_are_rejected(self):
        payload = booking_payload()
        del payload['customer_name']
        response = self.post('/api/bookings/', payload)

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['code'], 'invalid_selection')
        self.assertIn('customer_name', data['details']['fields'])

    def test_invalid_json_returns_error(self):
        response = self.client.post('/api/bookings/', data='not json', content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid JSON')

    def test_get_booking(self):
        order = self.submit()
        response = self.client.get(f'/api/bookings/{order.pk}/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking']['id'], order.pk)

    def test_get_missing_booking_returns_404(self):
        response = self.client.get('/api/bookings/999/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['code'], 'not_found')

    def test_catalog_lists_services_and_barangays(self):
        response = self.client.get('/api/bookings/catalog/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual([s['id'] for s in data['main_services']], ['fullService', 'washDryFold'])
        self.assertEqual(len(data['add_ons']), 4)
        self.assertIn('Barangay 1', data['barangays'])
        self.assertEqual(data['free_delivery_min_loads'], 2)


class CapacityTest(EngineTestCase):
    def test_fourth_booking_on_same_date_is_refused(self):
        for _ in range(3):
            self.submit()

        response = self.post('/api/bookings/', booking_payload())

        self.assertEqual(response.status_code, 409)
        data = response.json()
        self.assertEqual(data['code'], 'capacity_exceeded')
        self.assertEqual(data['details']['current_count'], 3)
        self.assertEqual(BookingOrder.objects.filter(pickup_date=PICKUP_DATE).count(), 3)

    def test_other_dates_are_unaffected(self):
        for _ in range(3):
            self.submit()
        order = self.submit(pickup_date=PICKUP_DATE + timedelta(days=1))
        self.assertEqual(order.status, 'pending_booking')

    def test_rejected_and_cancelled_bookings_free_their_slot(self):
        first = self.submit()
        second = self.submit()
        self.submit()

        self.machine.reject(first.pk, 'Outside service hours')
        self.machine.cancel(second.pk)

        self.submit()
        self.submit()
        with self.assertRaises(CapacityExceeded):
            self.submit()

    def test_deleted_bookings_free_their_slot(self):
        orders = [self.submit() for _ in range(3)]
        self.machine.soft_delete(orders[0].pk)

        order = self.submit()
        self.assertEqual(order.status, 'pending_booking')
        self.assertEqual(CapacityGate().count(PICKUP_DATE), 3)

    def test_gate_counts_and_remaining(self):
        self.submit()
        gate = CapacityGate(limit=3)

        check = gate.check_and_reserve(PICKUP_DATE)
        self.assertTrue(check.allowed)
        self.assertEqual(check.current_count, 1)
        self.assertEqual(check.remaining, 2)
        self.assertEqual(gate.counts([PICKUP_DATE, date(2026, 12, 1)]), {PICKUP_DATE: 1, date(2026, 12, 1): 0})

    def test_counts_endpoint(self):
        self.submit()
        self.submit()
        response = self.post('/api/bookings/counts/', {'dates': ['2026-11-20', '2026-11-21']})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['limit'], 3)
        self.assertEqual(data['counts']['2026-11-20'], {'count': 2, 'remaining': 1})
        self.assertEqual(data['counts']['2026-11-21'], {'count': 0, 'remaining': 3})


class LifecycleTest(EngineTestCase):
    def test_full_processing_sequence(self):
        order = self.submit()
        self.machine.approve(order.pk)
        order = self.machine.start_order(order.pk)
        self.assertEqual(order.status, 'pending')

        seen = []
        for _ in range(4):
            order = self.machine.advance(order.pk)
            seen.append(order.status)
        self.assertEqual(seen, ['washing', 'drying', 'folding', 'ready'])

        order = self.machine.complete(order.pk)
        self.assertEqual(order.status, 'completed')
        self.assertIsNone(order.moved_to_history_at)

    def test_advance_on_ready_completes(self):
        order = self.to_ready(self.submit())
        response = self.post(f'/api/bookings/{order.pk}/advance/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking']['status'], 'completed')

    def test_advance_on_completed_is_refused(self):
        order = self.to_ready(self.submit())
        self.machine.complete(order.pk)
        response = self.post(f'/api/bookings/{order.pk}/advance/')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'invalid_transition')

    def test_approve_is_idempotent_without_duplicate_events(self):
        order = self.submit()

        with self.captureOnCommitCallbacks() as callbacks:
            self.machine.approve(order.pk)
        self.assertEqual(len(callbacks), 1)

        with self.captureOnCommitCallbacks() as callbacks:
            again = self.machine.approve(order.pk)
        self.assertEqual(len(callbacks), 0)
        self.assertEqual(again.status, 'approved')

    def test_transitions_from_wrong_status_are_refused(self):
        order = self.submit()
        with self.assertRaises(InvalidTransition):
            self.machine.start_order(order.pk)
        with self.assertRaises(InvalidTransition):
            self.machine.complete(order.pk)
        with self.assertRaises(InvalidTransition):
            self.machine.advance(order.pk)

        self.machine.approve(order.pk)
        with self.assertRaises(InvalidTransition):
            self.machine.cancel(order.pk)

    def test_reject_requires_reason(self):
        order = self.submit()
        response = self.post(f'/api/bookings/{order.pk}/reject/', {'reason': '   '})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'invalid_selection')
        order.refresh_from_db()
        self.assertEqual(order.status, 'pending_booking')

    def test_reject_moves_booking_to_history(self):
        order = self.submit()
        response = self.post(f'/api/bookings/{order.pk}/reject/', {'reason': 'Area not serviced'})

        self.assertEqual(response.status_code, 200)
        booking = response.json()['booking']
        self.assertEqual(booking['status'], 'rejected')
        self.assertEqual(booking['rejection_reason'], 'Area not serviced')
        self.assertTrue(booking['is_archived'])

    def test_cancel_booking(self):
        order = self.submit()
        response = self.post(f'/api/bookings/{order.pk}/cancel/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking']['status'], 'cancelled')

    def test_advance_with_expected_status_is_safe_to_repeat(self):
        order = self.submit()
        self.machine.approve(order.pk)
        self.machine.start_order(order.pk)
        self.machine.advance(order.pk, expected_status='pending')

        again = self.machine.advance(order.pk, expected_status='pending')
        self.assertEqual(again.status, 'washing')

        with self.assertRaises(InvalidTransition):
            self.machine.advance(order.pk, expected_status='drying')

    def test_stale_write_is_detected(self):
        order = self.submit()
        stale = BookingOrder.objects.get(pk=order.pk)
        self.machine.approve(order.pk)

        with self.assertRaises(ConcurrentModification):
            conditional_update(stale, {'status': stale.status}, status='cancelled')
        order.refresh_from_db()
        self.assertEqual(order.status, 'approved')

    def test_soft_deleted_order_is_frozen_until_restored(self):
        order = self.submit()
        response = self.post(f'/api/bookings/{order.pk}/delete/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['booking']['is_deleted'])

        response = self.post(f'/api/bookings/{order.pk}/approve/')
        self.assertEqual(response.status_code, 409)

        response = self.post(f'/api/bookings/{order.pk}/restore/')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['booking']['is_deleted'])

        response = self.post(f'/api/bookings/{order.pk}/approve/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking']['status'], 'approved')

    def test_soft_delete_of_final_order_is_refused(self):
        order = self.to_ready(self.submit())
        self.machine.complete(order.pk)

        with self.assertRaises(InvalidTransition):
            self.machine.soft_delete(order.pk)

    @override_settings(LAUNDRY_EVENTS_CALLBACK_URL='https://hooks.example.com/laundry')
    @patch('bookings.events.requests.post')
    def test_events_are_posted_after_commit(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        with self.captureOnCommitCallbacks(execute=True):
            order = self.submit()

        mock_post.assert_called_once()
        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload['event'], events.CREATED)
        self.assertEqual(payload['order_id'], order.pk)
        self.assertEqual(mock_post.call_args.kwargs['timeout'], 5)

    @override_settings(LAUNDRY_EVENTS_CALLBACK_URL='https://hooks.example.com/laundry')
    @patch('bookings.events.requests.post')
    def test_failed_event_delivery_does_not_fail_transition(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('down')
        order = self.submit()

        with self.captureOnCommitCallbacks(execute=True):
            approved = self.machine.approve(order.pk)

        self.assertEqual(approved.status, 'approved')
        self.assertFalse(events.deliver(events.build_payload(events.STATUS_CHANGED, order.pk)))

    def test_deliver_without_callback_url_is_skipped(self):
        self.assertFalse(events.deliver(events.build_payload(events.CREATED, 1)))


class RepriceTest(EngineTestCase):
    def test_add_on_price_override(self):
        order = self.submit(add_ons=['dryCleanGown'])
        self.assertEqual(order.total_price_centavos, 39800)

        response = self.post(f'/api/bookings/{order.pk}/pricing/', {'add_on_prices': {'dryCleanGown': 65000}})

        self.assertEqual(response.status_code, 200)
        booking = response.json()['booking']
        self.assertEqual(booking['add_on_prices'], {'dryCleanGown': 65000})
        self.assertEqual(booking['total_price_centavos'], 39800 + 65000)

    def test_override_for_unselected_add_on_is_refused(self):
        order = self.submit()
        response = self.post(f'/api/bookings/{order.pk}/pricing/', {'add_on_prices': {'dryCleanCoat': 40000}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'invalid_selection')

    def test_load_count_change_recomputes_delivery_fee(self):
        order = self.submit()
        order = self.machine.reprice(order.pk, load_count=1)

        self.assertEqual(order.load_count, 1)
        self.assertEqual(order.delivery_fee_centavos, 3000)
        self.assertEqual(order.total_price_centavos, 22900)

    def test_reprice_of_completed_order_is_refused(self):
        order = self.to_ready(self.submit())
        self.machine.complete(order.pk)

        with self.assertRaises(InvalidTransition):
            self.machine.reprice(order.pk, load_count=3)

    def test_empty_reprice_is_refused(self):
        order = self.submit()
        response = self.post(f'/api/bookings/{order.pk}/pricing/', {})

        self.assertEqual(response.status_code, 400)


class ProcessingTimerTest(EngineTestCase):
    def washing_order(self, auto_advance=True):
        order = self.submit()
        self.machine.approve(order.pk)
        self.machine.start_order(order.pk)
        order = self.machine.advance(order.pk)
        if auto_advance:
            ProcessingTimer(self.machine).set_auto_advance(order.pk, True)
        return order

    def test_remaining_counts_down_to_zero(self):
        start = timezone.now()
        state = TimerState(status='washing', start_time=start, duration_ms=3600000)

        self.assertEqual(remaining(state, start), 3600000)
        self.assertEqual(remaining(state, start + timedelta(milliseconds=3599999)), 1)
        self.assertEqual(remaining(state, start + timedelta(milliseconds=3600000)), 0)
        self.assertEqual(remaining(state, start + timedelta(hours=5)), 0)

    def test_entering_timed_status_starts_timer(self):
        order = self.washing_order(auto_advance=False)

        self.assertEqual(order.timer_status, 'washing')
        self.assertIsNotNone(order.timer_started_at)
        self.assertEqual(order.timer_duration_ms, 3600000)

        order = self.machine.advance(order.pk)
        order = self.machine.advance(order.pk)
        order = self.machine.advance(order.pk)
        self.assertEqual(order.status, 'ready')
        self.assertEqual(order.timer_status, '')
        self.assertIsNone(order.timer_started_at)

    def test_timer_status_endpoint(self):
        order = self.washing_order(auto_advance=False)
        response = self.client.get(f'/api/bookings/{order.pk}/timer/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['is_active'])
        self.assertEqual(data['timer_status'], 'washing')
        self.assertGreater(data['remaining_ms'], 0)
        self.assertLessEqual(data['remaining_ms'], 3600000)

    def test_toggle_auto_advance_endpoint(self):
        order = self.washing_order(auto_advance=False)
        response = self.post(f'/api/bookings/{order.pk}/timer/auto-advance/', {'enabled': True})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['auto_advance_enabled'])

    def test_expired_timer_advances_once(self):
        order = self.washing_order()
        timer = ProcessingTimer(self.machine)
        later = timezone.now() + timedelta(hours=2)

        self.assertEqual(timer.expire(order.pk, later), 'drying')
        self.assertIsNone(timer.expire(order.pk, timezone.now()))
        order.refresh_from_db()
        self.assertEqual(order.status, 'drying')

    def test_timer_not_yet_expired_does_nothing(self):
        order = self.washing_order()
        self.assertIsNone(ProcessingTimer(self.machine).expire(order.pk))

    def test_sweep_skips_orders_without_auto_advance(self):
        manual = self.washing_order(auto_advance=False)
        automatic = self.washing_order()
        later = timezone.now() + timedelta(hours=2)

        advanced = ProcessingTimer(self.machine).sweep(later)

        self.assertEqual(advanced, [(automatic.pk, 'drying')])
        manual.refresh_from_db()
        self.assertEqual(manual.status, 'washing')

    def test_start_rejects_non_timed_status(self):
        order = self.submit()
        with self.assertRaises(InvalidTransition):
            ProcessingTimer(self.machine).start(order.pk, 'washing')

    def test_expire_timers_command(self):
        order = self.washing_order()
        BookingOrder.objects.filter(pk=order.pk).update(timer_started_at=timezone.now() - timedelta(hours=2))

        out = StringIO()
        call_command('expire_timers', stdout=out)

        self.assertIn(f'Order {order.pk} advanced to drying.', out.getvalue())
        order.refresh_from_db()
        self.assertEqual(order.status, 'drying')

    def test_expire_timers_endpoint_with_nothing_due(self):
        self.washing_order()
        response = self.post('/api/bookings/timers/expire/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['advanced'], [])


class HistoryTest(EngineTestCase):
    def settled_order(self):
        order = self.to_ready(self.submit())
        self.machine.complete(order.pk)
        return PaymentReconciler().mark_paid(order.pk)

    def test_completed_and_paid_order_is_archived(self):
        order = self.settled_order()

        self.assertIsNotNone(order.moved_to_history_at)
        response = self.client.get('/api/bookings/history/?type=completed')
        self.assertEqual([b['id'] for b in response.json()['results']], [order.pk])

    def test_history_filters_by_type(self):
        rejected = self.submit()
        self.machine.reject(rejected.pk, 'Duplicate booking')
        deleted = self.submit()
        self.machine.soft_delete(deleted.pk)
        self.submit()

        archive = HistoryArchive()
        self.assertEqual([o.pk for o in archive.list('rejected')], [rejected.pk])
        self.assertEqual([o.pk for o in archive.list('deleted')], [deleted.pk])
        self.assertEqual({o.pk for o in archive.list()}, {rejected.pk, deleted.pk})

    def test_unknown_history_type_is_rejected(self):
        response = self.client.get('/api/bookings/history/?type=lost')
        self.assertEqual(response.status_code, 400)

    def test_restore_settled_order_keeps_status(self):
        order = self.settled_order()
        restored = self.machine.restore(order.pk)

        self.assertIsNone(restored.moved_to_history_at)
        self.assertEqual(restored.status, 'completed')
        self.assertEqual(restored.payment_status, 'paid')

    def test_restore_rejected_booking_reopens_it(self):
        order = self.submit()
        self.machine.reject(order.pk, 'Wrong address')
        restored = self.machine.restore(order.pk)

        self.assertEqual(restored.status, 'pending_booking')
        self.assertEqual(restored.rejection_reason, '')
        self.assertFalse(restored.in_history)

    def test_restore_rejected_booking_into_full_date_is_refused(self):
        order = self.submit()
        self.machine.reject(order.pk, 'Wrong address')
        for _ in range(3):
            self.submit()

        response = self.post(f'/api/bookings/{order.pk}/restore/')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'capacity_exceeded')
        self.assertEqual(CapacityGate().count(PICKUP_DATE), 3)
        order.refresh_from_db()
        self.assertEqual(order.status, 'rejected')
        self.assertTrue(order.in_history)

    def test_restore_deleted_booking_into_full_date_is_refused(self):
        order = self.submit()
        self.machine.soft_delete(order.pk)
        for _ in range(3):
            self.submit()

        with self.assertRaises(CapacityExceeded):
            self.machine.restore(order.pk)
        order.refresh_from_db()
        self.assertTrue(order.is_deleted)
        self.assertEqual(CapacityGate().count(PICKUP_DATE), 3)

    def test_restore_settled_order_ignores_full_date(self):
        order = self.settled_order()
        self.submit()
        self.submit()

        restored = self.machine.restore(order.pk)
        self.assertFalse(restored.in_history)
        self.assertEqual(CapacityGate().count(PICKUP_DATE), 3)

    def test_restore_deleted_timed_order_restarts_timer(self):
        order = self.submit()
        self.machine.approve(order.pk)
        self.machine.start_order(order.pk)
        self.machine.advance(order.pk)
        ProcessingTimer(self.machine).set_auto_advance(order.pk, True)
        BookingOrder.objects.filter(pk=order.pk).update(timer_started_at=timezone.now() - timedelta(hours=2))
        self.machine.soft_delete(order.pk)

        restored = self.machine.restore(order.pk)

        self.assertEqual(restored.status, 'washing')
        self.assertEqual(restored.timer_status, 'washing')
        self.assertGreater(ProcessingTimer(self.machine).status(order.pk)['remaining_ms'], 0)
        self.assertEqual(ProcessingTimer(self.machine).sweep(), [])

    def test_restore_of_active_order_is_noop(self):
        order = self.submit()
        with self.captureOnCommitCallbacks() as callbacks:
            restored = self.machine.restore(order.pk)
        self.assertEqual(restored.status, 'pending_booking')
        self.assertEqual(len(callbacks), 0)

    def test_purge_removes_history_record(self):
        order = self.submit()
        self.machine.soft_delete(order.pk)
        response = self.post(f'/api/bookings/history/{order.pk}/purge/')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(BookingOrder.objects.filter(pk=order.pk).exists())

    def test_purge_of_active_order_is_refused(self):
        order = self.submit()
        response = self.post(f'/api/bookings/history/{order.pk}/purge/')

        self.assertEqual(response.status_code, 409)
        self.assertTrue(BookingOrder.objects.filter(pk=order.pk).exists())


class BookingOrderAdminTest(EngineTestCase):
    def setUp(self):
        super().setUp()
        self.model_admin = admin.site._registry[BookingOrder]
        self.request = RequestFactory().post('/admin/bookings/bookingorder/')
        self.request.session = {}
        self.request._messages = FallbackStorage(self.request)

    def change_form(self, **changes):
        form = MagicMock()
        form.changed_data = list(changes)
        form.cleaned_data = changes
        return form

    def test_editing_load_count_reprices_order(self):
        order = self.submit()
        obj = BookingOrder.objects.get(pk=order.pk)
        obj.load_count = 1

        self.model_admin.save_model(self.request, obj, self.change_form(load_count=1), True)

        order.refresh_from_db()
        self.assertEqual(order.load_count, 1)
        self.assertEqual(order.main_service_price_centavos, 19900)
        self.assertEqual(order.delivery_fee_centavos, 3000)
        self.assertEqual(order.total_price_centavos, 22900)

    def test_editing_contact_details_keeps_pricing(self):
        order = self.submit()
        obj = BookingOrder.objects.get(pk=order.pk)
        obj.customer_contact = '09990000000'

        self.model_admin.save_model(self.request, obj, self.change_form(customer_contact='09990000000'), True)

        order.refresh_from_db()
        self.assertEqual(order.customer_contact, '09990000000')
        self.assertEqual(order.total_price_centavos, 39800)

    def test_reprice_of_completed_order_is_not_saved(self):
        order = self.to_ready(self.submit())
        self.machine.complete(order.pk)
        obj = BookingOrder.objects.get(pk=order.pk)
        obj.load_count = 5

        self.model_admin.save_model(self.request, obj, self.change_form(load_count=5), True)

        order.refresh_from_db()
        self.assertEqual(order.load_count, 2)
        self.assertEqual(order.total_price_centavos, 39800)

    def test_workflow_fields_are_read_only(self):
        for name in ('status', 'pickup_date', 'barangay', 'is_deleted', 'payment_status', 'total_price_centavos'):
            self.assertIn(name, self.model_admin.readonly_fields)
        self.assertFalse(self.model_admin.has_add_permission(self.request))


class StatsTest(EngineTestCase):
    def test_stats_cover_live_orders(self):
        self.submit()
        approved = self.submit()
        self.machine.approve(approved.pk)
        deleted = self.submit(pickup_date=PICKUP_DATE + timedelta(days=1))
        self.machine.soft_delete(deleted.pk)

        response = self.client.get('/api/bookings/stats/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['total_orders'], 2)
        self.assertEqual(data['pending_booking_orders'], 1)
        self.assertEqual(data['approved_orders'], 1)
        self.assertEqual(data['total_revenue_centavos'], 39800 * 2)
        self.assertEqual(data['unpaid_orders'], 2)
