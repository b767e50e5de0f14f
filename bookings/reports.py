from django.db.models import Count, Q, Sum

from .models import BookingOrder


def order_stats():
    aggregates = {'total_orders': Count('id'), 'total_revenue_centavos': Sum('total_price_centavos')}
    for status, _ in BookingOrder.STATUS_CHOICES:
        aggregates[f'{status}_orders'] = Count('id', filter=Q(status=status))

    row = BookingOrder.objects.live().aggregate(**aggregates)
    row['total_revenue_centavos'] = row['total_revenue_centavos'] or 0
    row['unpaid_orders'] = BookingOrder.objects.live().exclude(payment_status=BookingOrder.PAID).count()
    return row
