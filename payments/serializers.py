from rest_framework import serializers

from bookings.models import BookingOrder

from .reconciler import DECISIONS


class ProofSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    proof_image = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=DECISIONS)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentMethodSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=BookingOrder.PAYMENT_METHOD_CHOICES)
