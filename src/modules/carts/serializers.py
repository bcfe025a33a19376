"""Cart DRF serializers for API input/output.

Request and response bodies use the storefront's camelCase keys.  Business
rules live in ``CartService``; these serializers only check shape and types.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.carts.constants import MAX_ITEM_QUANTITY, MIN_ITEM_QUANTITY
from modules.carts.models import Cart, CartItem
from modules.catalog.constants import ItemType

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class AddItemSerializer(serializers.Serializer):
    clientId = serializers.UUIDField()
    itemId = serializers.UUIDField()
    itemType = serializers.ChoiceField(choices=ItemType.choices)
    quantity = serializers.IntegerField(
        min_value=MIN_ITEM_QUANTITY, max_value=MAX_ITEM_QUANTITY
    )


class UpdateQuantitySerializer(serializers.Serializer):
    clientId = serializers.UUIDField()
    itemId = serializers.UUIDField()
    quantity = serializers.IntegerField(
        min_value=MIN_ITEM_QUANTITY, max_value=MAX_ITEM_QUANTITY
    )


class RemoveItemSerializer(serializers.Serializer):
    clientId = serializers.UUIDField()
    itemId = serializers.UUIDField()


class ClearAfterPurchaseSerializer(serializers.Serializer):
    """``userId`` is the client that owns the cart."""

    userId = serializers.UUIDField()
    orderId = serializers.UUIDField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class CartItemSerializer(serializers.ModelSerializer):
    itemType = serializers.CharField(source="item_type", read_only=True)
    itemId = serializers.UUIDField(source="item_id", read_only=True)
    name = serializers.CharField(source="item_name", read_only=True)
    unitPrice = serializers.DecimalField(
        source="unit_price", max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = CartItem
        fields = ["id", "itemType", "itemId", "name", "quantity", "unitPrice", "subtotal"]
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    """Read serializer for a cart with its lines and discount snapshots."""

    clientId = serializers.UUIDField(source="client_id", read_only=True)
    items = CartItemSerializer(many=True, read_only=True)
    pendingDiscount = serializers.SerializerMethodField()
    appliedDiscount = serializers.SerializerMethodField()
    completedAt = serializers.DateTimeField(source="completed_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Cart
        fields = [
            "id",
            "clientId",
            "status",
            "items",
            "subtotal",
            "total",
            "pendingDiscount",
            "appliedDiscount",
            "completedAt",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_pendingDiscount(self, cart: Cart) -> dict | None:
        snapshot = cart.pending_snapshot
        return snapshot.to_api() if snapshot else None

    def get_appliedDiscount(self, cart: Cart) -> dict | None:
        snapshot = cart.applied_snapshot
        return snapshot.to_api() if snapshot else None
