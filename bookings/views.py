import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from . import catalog
from .capacity import CapacityGate
from .errors import InvalidSelection, LaundryError
from .history import HistoryArchive
from .lifecycle import BookingSubmission, LifecycleStateMachine
from .models import BookingOrder
from .reports import order_stats
from .serializers import (
    AdvanceSerializer,
    AutoAdvanceSerializer,
    BookingCountsSerializer,
    BookingOrderSerializer,
    BookingSubmissionSerializer,
    RejectSerializer,
    RepriceSerializer,
    validate,
)
from .timers import ProcessingTimer

logger = logging.getLogger(__name__)


def read_json(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        raise InvalidSelection('Invalid JSON')
    if not isinstance(data, dict):
        raise InvalidSelection('Request body must be a JSON object')
    return data


def engine_errors(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except BookingOrder.DoesNotExist:
            return JsonResponse({'error': 'Booking not found', 'code': 'not_found'}, status=404)
        except LaundryError as e:
            logger.warning('%s %s rejected: %s', request.method, request.path, e.message)
            return JsonResponse(e.as_dict(), status=e.status_code)
    return wrapper


def order_response(order, status=200, **extra):
    data = {'booking': BookingOrderSerializer(order).data}
    data.update(extra)
    return JsonResponse(data, status=status)


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def submit_booking(request):
    data = validate(BookingSubmissionSerializer, read_json(request))
    order = LifecycleStateMachine().submit(BookingSubmission(**data))
    return order_response(order, status=201, booking_id=order.id, message='Booking submitted')


@require_http_methods(["GET"])
@engine_errors
def get_booking(request, booking_id):
    return order_response(BookingOrder.objects.get(id=booking_id))


@require_http_methods(["GET"])
def get_catalog(request):
    return JsonResponse(catalog.as_dict())


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def booking_counts(request):
    data = validate(BookingCountsSerializer, read_json(request))
    gate = CapacityGate()
    counts = gate.counts(data['dates'])
    return JsonResponse({
        'limit': gate.limit,
        'counts': {
            d.isoformat(): {'count': n, 'remaining': max(0, gate.limit - n)}
            for d, n in counts.items()
        },
    })


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def approve_booking(request, booking_id):
    return order_response(LifecycleStateMachine().approve(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def reject_booking(request, booking_id):
    data = validate(RejectSerializer, read_json(request))
    return order_response(LifecycleStateMachine().reject(booking_id, data['reason']))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def cancel_booking(request, booking_id):
    return order_response(LifecycleStateMachine().cancel(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def start_order(request, booking_id):
    return order_response(LifecycleStateMachine().start_order(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def advance_order(request, booking_id):
    data = validate(AdvanceSerializer, read_json(request))
    order = LifecycleStateMachine().advance(booking_id, expected_status=data.get('expected_status'))
    return order_response(order)


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def complete_order(request, booking_id):
    return order_response(LifecycleStateMachine().complete(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def reprice_order(request, booking_id):
    data = validate(RepriceSerializer, read_json(request))
    if not data:
        raise InvalidSelection('Nothing to reprice')
    return order_response(LifecycleStateMachine().reprice(booking_id, **data))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def delete_booking(request, booking_id):
    return order_response(LifecycleStateMachine().soft_delete(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def restore_booking(request, booking_id):
    return order_response(LifecycleStateMachine().restore(booking_id))


@require_http_methods(["GET"])
@engine_errors
def timer_status(request, booking_id):
    return JsonResponse(ProcessingTimer().status(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def toggle_auto_advance(request, booking_id):
    data = validate(AutoAdvanceSerializer, read_json(request))
    timer = ProcessingTimer()
    timer.set_auto_advance(booking_id, data['enabled'])
    return JsonResponse(timer.status(booking_id))


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def expire_timers(request):
    advanced = ProcessingTimer().sweep()
    return JsonResponse({
        'advanced': [{'booking_id': pk, 'status': status} for pk, status in advanced],
    })


@require_http_methods(["GET"])
@engine_errors
def history(request):
    orders = HistoryArchive().list(request.GET.get('type'))
    return JsonResponse({'results': BookingOrderSerializer(orders, many=True).data})


@csrf_exempt
@require_http_methods(["POST"])
@engine_errors
def purge_booking(request, booking_id):
    HistoryArchive().purge(booking_id)
    return JsonResponse({'booking_id': booking_id, 'message': 'Booking permanently deleted'})


@require_http_methods(["GET"])
def stats(request):
    return JsonResponse(order_stats())
