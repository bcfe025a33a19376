"""Checkout DRF serializers.

``CreateSaleSerializer`` reads the multipart submission of the wizard's
review step.  Card fields are not part of it: card payments are processed by
the storefront and only the payment type reaches the API.
"""

from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from modules.checkout.constants import (
    DELIVERY_ADDRESS_MIN_LENGTH,
    DELIVERY_POINT_MIN_LENGTH,
    RECEIVER_NAME_MIN_LENGTH,
    RECEIVER_PHONE_LENGTH,
    PaymentType,
    SaleStatus,
    TrackingStatus,
    is_card_payment,
)
from modules.checkout.models import Sale

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateSaleSerializer(serializers.Serializer):
    clientId = serializers.UUIDField()
    receiverName = serializers.CharField(
        min_length=RECEIVER_NAME_MIN_LENGTH, max_length=120
    )
    receiverPhone = serializers.RegexField(
        rf"^\d{{{RECEIVER_PHONE_LENGTH}}}$",
        error_messages={
            "invalid": f"Phone number must have exactly {RECEIVER_PHONE_LENGTH} digits."
        },
    )
    deliveryAddress = serializers.CharField(min_length=DELIVERY_ADDRESS_MIN_LENGTH)
    deliveryPoint = serializers.CharField(min_length=DELIVERY_POINT_MIN_LENGTH)
    deliveryDate = serializers.DateField()
    paymentType = serializers.ChoiceField(choices=PaymentType.choices)
    paymentProof = serializers.FileField(required=False, allow_null=True)

    def validate_deliveryDate(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Delivery date cannot be in the past.")
        return value

    def validate(self, attrs):
        if not is_card_payment(attrs["paymentType"]) and not attrs.get("paymentProof"):
            raise serializers.ValidationError(
                {"paymentProof": "A payment proof is required for this payment type."}
            )
        return attrs


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=SaleStatus.choices)


class TrackingStatusSerializer(serializers.Serializer):
    trackingStatus = serializers.ChoiceField(choices=TrackingStatus.choices)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class SaleSerializer(serializers.ModelSerializer):
    clientId = serializers.UUIDField(source="client_id", read_only=True)
    cartId = serializers.UUIDField(source="cart_id", read_only=True)
    paymentType = serializers.CharField(source="payment_type", read_only=True)
    paymentProofUrl = serializers.CharField(source="payment_proof_url", read_only=True)
    trackingStatus = serializers.CharField(source="tracking_status", read_only=True)
    receiverName = serializers.CharField(source="receiver_name", read_only=True)
    receiverPhone = serializers.CharField(source="receiver_phone", read_only=True)
    deliveryAddress = serializers.CharField(source="delivery_address", read_only=True)
    deliveryPoint = serializers.CharField(source="delivery_point", read_only=True)
    deliveryDate = serializers.DateField(source="delivery_date", read_only=True)
    subtotalAmount = serializers.DecimalField(
        source="subtotal_amount", max_digits=12, decimal_places=2, read_only=True
    )
    discountAmount = serializers.DecimalField(
        source="discount_amount", max_digits=12, decimal_places=2, read_only=True
    )
    totalAmount = serializers.DecimalField(
        source="total_amount", max_digits=12, decimal_places=2, read_only=True
    )
    discountStatus = serializers.CharField(source="discount_status", read_only=True)
    cartArchived = serializers.BooleanField(source="cart_archived", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "clientId",
            "cartId",
            "paymentType",
            "paymentProofUrl",
            "status",
            "trackingStatus",
            "receiverName",
            "receiverPhone",
            "deliveryAddress",
            "deliveryPoint",
            "deliveryDate",
            "subtotalAmount",
            "discountAmount",
            "totalAmount",
            "discountStatus",
            "cartArchived",
            "createdAt",
        ]
        read_only_fields = fields
