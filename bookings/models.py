from django.db import models
from django.db.models import Q

from .catalog import PICKUP_AND_DELIVERY, PICKUP_TIME_CHOICES, SERVICE_OPTION_CHOICES


class BookingOrderQuerySet(models.QuerySet):
    def live(self):
        return self.filter(is_deleted=False, moved_to_history_at__isnull=True)

    def holding_capacity(self):
        return self.filter(is_deleted=False).exclude(status__in=BookingOrder.RELEASED_STATUSES)

    def in_history(self):
        return self.filter(Q(moved_to_history_at__isnull=False) | Q(is_deleted=True))


class BookingOrder(models.Model):
    PENDING_BOOKING = 'pending_booking'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'
    PENDING = 'pending'
    WASHING = 'washing'
    DRYING = 'drying'
    FOLDING = 'folding'
    READY = 'ready'
    COMPLETED = 'completed'

    STATUS_CHOICES = [
        (PENDING_BOOKING, 'Pending Booking'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
        (CANCELLED, 'Cancelled'),
        (PENDING, 'Pending'),
        (WASHING, 'Washing'),
        (DRYING, 'Drying'),
        (FOLDING, 'Folding'),
        (READY, 'Ready'),
        (COMPLETED, 'Completed'),
    ]

    PROCESSING_SEQUENCE = [PENDING, WASHING, DRYING, FOLDING, READY]
    TIMED_STATUSES = (WASHING, DRYING, FOLDING)
    TERMINAL_STATUSES = (REJECTED, CANCELLED, COMPLETED)
    RELEASED_STATUSES = (REJECTED, CANCELLED)

    CASH = 'cash'
    GCASH = 'gcash'
    CARD = 'card'

    PAYMENT_METHOD_CHOICES = [
        (CASH, 'Cash'),
        (GCASH, 'GCash'),
        (CARD, 'Card'),
    ]

    UNPAID = 'unpaid'
    GCASH_PENDING = 'gcash_pending'
    PAID = 'paid'

    PAYMENT_STATUS_CHOICES = [
        (UNPAID, 'Unpaid'),
        (GCASH_PENDING, 'GCash Pending Review'),
        (PAID, 'Paid'),
    ]

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING_BOOKING, db_index=True)

    customer_name = models.CharField(max_length=255)
    customer_contact = models.CharField(max_length=50)
    customer_email = models.EmailField(blank=True)
    street = models.CharField(max_length=255)
    block_lot = models.CharField(max_length=100, blank=True)
    landmark = models.CharField(max_length=255, blank=True)
    barangay = models.CharField(max_length=100)

    main_service = models.CharField(max_length=50)
    add_ons = models.JSONField(default=list, blank=True)
    load_count = models.PositiveIntegerField(default=1)
    service_option = models.CharField(max_length=20, choices=SERVICE_OPTION_CHOICES, default=PICKUP_AND_DELIVERY)
    pickup_date = models.DateField(db_index=True)
    pickup_time = models.CharField(max_length=20, choices=PICKUP_TIME_CHOICES)
    instructions = models.TextField(blank=True)

    main_service_price_centavos = models.IntegerField(default=0)
    add_on_prices = models.JSONField(default=dict, blank=True)
    delivery_fee_centavos = models.IntegerField(default=0)
    total_price_centavos = models.IntegerField(default=0)

    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default=CASH)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=UNPAID, db_index=True)
    payment_reference = models.CharField(max_length=100, blank=True)
    payment_proof_image = models.CharField(max_length=500, blank=True)
    payment_notes = models.TextField(blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    timer_status = models.CharField(max_length=20, blank=True)
    timer_started_at = models.DateTimeField(null=True, blank=True)
    timer_duration_ms = models.PositiveIntegerField(null=True, blank=True)
    auto_advance_enabled = models.BooleanField(default=False)

    rejection_reason = models.TextField(blank=True)

    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    moved_to_history_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingOrderQuerySet.as_manager()

    class Meta:
        db_table = 'bookings_booking_order'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.customer_name} - {self.main_service} - {self.status}"

    @property
    def is_archived(self):
        return self.moved_to_history_at is not None

    @property
    def in_history(self):
        return self.is_deleted or self.is_archived

    @property
    def is_settled(self):
        return self.status == self.COMPLETED and self.payment_status == self.PAID

    def has_timer(self):
        return self.timer_started_at is not None


class PickupSlot(models.Model):
    pickup_date = models.DateField(unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bookings_pickup_slot'

    def __str__(self):
        return str(self.pickup_date)
