import logging

import requests
from django.conf import settings
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

CREATED = 'created'
STATUS_CHANGED = 'statusChanged'
PAYMENT_DECIDED = 'paymentDecided'
ARCHIVED = 'archived'
RESTORED = 'restored'
PURGED = 'purged'


def build_payload(event, order_id, **extra):
    payload = {
        'event': event,
        'order_id': order_id,
        'timestamp': timezone.now().isoformat(),
    }
    payload.update(extra)
    return payload


def emit(event, order_id, **extra):
    payload = build_payload(event, order_id, **extra)
    logger.info('event %s order=%s %s', event, order_id, extra)
    transaction.on_commit(lambda: deliver(payload))
    return payload


def deliver(payload):
    url = settings.LAUNDRY_EVENTS_CALLBACK_URL
    if not url:
        return False

    try:
        response = requests.post(url, json=payload, timeout=5)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning('event callback failed for %s order=%s: %s', payload['event'], payload['order_id'], e)
        return False
    return True
