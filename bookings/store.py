from django.utils import timezone

from .errors import ConcurrentModification
from .models import BookingOrder


def conditional_update(order, expected, **changes):
    """Write ``changes`` only if the stored row still matches ``expected``.

    The in-memory ``order`` is updated to match on success.
    """
    changes.setdefault('updated_at', timezone.now())
    updated = BookingOrder.objects.filter(pk=order.pk, **expected).update(**changes)
    if not updated:
        raise ConcurrentModification(
            f'Order {order.pk} was modified by another request; reload and retry.',
            order_id=order.pk,
        )
    for name, value in changes.items():
        setattr(order, name, value)
    return order


def load(order_id):
    return BookingOrder.objects.get(pk=order_id)
