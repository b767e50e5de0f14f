from rest_framework import serializers

from .catalog import ADD_ONS, MAIN_SERVICES, PICKUP_TIME_CHOICES, SERVICE_OPTION_CHOICES
from .errors import InvalidSelection
from .models import BookingOrder


def validate(serializer_class, data):
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise InvalidSelection('Invalid request data.', fields=serializer.errors)
    return serializer.validated_data


class BookingSubmissionSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    customer_contact = serializers.CharField(max_length=50)
    customer_email = serializers.EmailField(required=False, allow_blank=True, default='')
    street = serializers.CharField(max_length=255)
    block_lot = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    barangay = serializers.CharField(max_length=100)
    main_service = serializers.ChoiceField(choices=list(MAIN_SERVICES))
    add_ons = serializers.ListField(child=serializers.ChoiceField(choices=list(ADD_ONS)), required=False, default=list)
    load_count = serializers.IntegerField(min_value=1, default=1)
    service_option = serializers.ChoiceField(choices=SERVICE_OPTION_CHOICES, required=False, default='pickupAndDelivery')
    pickup_date = serializers.DateField()
    pickup_time = serializers.ChoiceField(choices=PICKUP_TIME_CHOICES)
    payment_method = serializers.ChoiceField(choices=BookingOrder.PAYMENT_METHOD_CHOICES, required=False, default='cash')
    instructions = serializers.CharField(required=False, allow_blank=True, default='')


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class AdvanceSerializer(serializers.Serializer):
    expected_status = serializers.ChoiceField(choices=BookingOrder.STATUS_CHOICES, required=False)


class RepriceSerializer(serializers.Serializer):
    main_service = serializers.ChoiceField(choices=list(MAIN_SERVICES), required=False)
    add_ons = serializers.ListField(child=serializers.ChoiceField(choices=list(ADD_ONS)), required=False)
    load_count = serializers.IntegerField(min_value=1, required=False)
    service_option = serializers.ChoiceField(choices=SERVICE_OPTION_CHOICES, required=False)
    add_on_prices = serializers.DictField(child=serializers.IntegerField(min_value=0), required=False)


class BookingCountsSerializer(serializers.Serializer):
    dates = serializers.ListField(child=serializers.DateField(), allow_empty=False, max_length=62)


class AutoAdvanceSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()


class BookingOrderSerializer(serializers.ModelSerializer):
    is_archived = serializers.BooleanField(read_only=True)

    class Meta:
        model = BookingOrder
        fields = [
            'id', 'status',
            'customer_name', 'customer_contact', 'customer_email',
            'street', 'block_lot', 'landmark', 'barangay',
            'main_service', 'add_ons', 'load_count', 'service_option',
            'pickup_date', 'pickup_time', 'instructions',
            'main_service_price_centavos', 'add_on_prices', 'delivery_fee_centavos', 'total_price_centavos',
            'payment_method', 'payment_status', 'payment_reference', 'payment_proof_image', 'payment_notes', 'paid_at',
            'timer_status', 'timer_started_at', 'timer_duration_ms', 'auto_advance_enabled',
            'rejection_reason',
            'is_deleted', 'deleted_at', 'moved_to_history_at', 'is_archived',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields
