from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from bookings.serializers import BookingOrderSerializer, validate
from bookings.views import engine_errors, order_response, read_json

from .reconciler import PaymentReconciler
from .serializers import DecisionSerializer, PaymentMethodSerializer, ProofSerializer


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def submit_proof(request, booking_id):
    data = validate(ProofSerializer, read_json(request))
    order = PaymentReconciler().submit_proof(booking_id, data['reference'], data['proof_image'])
    return order_response(order, message='GCash proof submitted for review')


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def decide_payment(request, booking_id):
    data = validate(DecisionSerializer, read_json(request))
    order = PaymentReconciler().decide(booking_id, data['decision'], data['notes'])
    return order_response(order, message=f"GCash payment {data['decision']}")


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def mark_paid(request, booking_id):
    return order_response(PaymentReconciler().mark_paid(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def mark_unpaid(request, booking_id):
    return order_response(PaymentReconciler().mark_unpaid(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def change_method(request, booking_id):
    data = validate(PaymentMethodSerializer, read_json(request))
    return order_response(PaymentReconciler().change_method(booking_id, data['payment_method']))


@require_http_methods(["GET"])
@engine_errors
def list_payments(request):
    orders = PaymentReconciler().by_status(request.GET.get('status'))
    return JsonResponse({'results': BookingOrderSerializer(orders, many=True).data})
