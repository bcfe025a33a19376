"""Discount DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.clients.models import DiscountCodeGrant


class ApplyDiscountSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64, trim_whitespace=True)


class OrderReferenceSerializer(serializers.Serializer):
    """Body of ``confirmDiscount`` and ``discountCodes/{codeId}/use``."""

    orderId = serializers.UUIDField()


class DiscountGrantSerializer(serializers.ModelSerializer):
    codeId = serializers.CharField(source="code_id", read_only=True)
    textColor = serializers.CharField(source="text_color", read_only=True)
    expiresAt = serializers.DateTimeField(source="expires_at", read_only=True)
    usedAt = serializers.DateTimeField(source="used_at", read_only=True)
    usedInOrderId = serializers.UUIDField(source="used_in_order_id", read_only=True)

    class Meta:
        model = DiscountCodeGrant
        fields = [
            "codeId",
            "code",
            "name",
            "discount",
            "color",
            "textColor",
            "status",
            "expiresAt",
            "usedAt",
            "usedInOrderId",
        ]
        read_only_fields = fields
