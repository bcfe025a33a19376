"""Cart API views.

Exposes ``CartService`` over HTTP.  Domain exceptions propagate to the shared
envelope exception handler; the view never touches the ORM directly.  Every
response re-surfaces the caller's session credential
(``SessionTokenRelayMixin``).
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.carts.dtos import AddItemDTO, RemoveItemDTO, UpdateQuantityDTO
from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.serializers import (
    AddItemSerializer,
    CartSerializer,
    ClearAfterPurchaseSerializer,
    RemoveItemSerializer,
    UpdateQuantitySerializer,
)
from modules.carts.services import CartService
from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.responses import ok
from modules.core.session import SessionTokenRelayMixin


class CartViewSet(SessionTokenRelayMixin, GenericViewSet):
    """Cart operations under ``/api/v1/cart``.

    Does **not** extend ``ModelViewSet``: all persistence goes through the
    service/repository layer.
    """

    serializer_class = CartSerializer
    lookup_url_kwarg = "cart_id"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(
            cart_repository=CartDjangoRepository(),
            client_repository=ClientDjangoRepository(),
            catalog_repository=CatalogDjangoRepository(),
        )

    @action(
        detail=False,
        methods=["get"],
        url_path=r"active/(?P<client_id>[^/.]+)",
        url_name="active",
    )
    def active(self, request: Request, client_id: str) -> Response:
        """GET /api/v1/cart/active/{clientId}"""
        cart = self._service.get_active_cart(client_id)
        return ok(CartSerializer(cart).data, "Active cart retrieved.")

    @action(detail=False, methods=["post"], url_path="addItem", url_name="add-item")
    def add_item(self, request: Request) -> Response:
        """POST /api/v1/cart/addItem"""
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart = self._service.add_item(
            AddItemDTO(
                client_id=data["clientId"],
                item_type=data["itemType"],
                item_id=data["itemId"],
                quantity=data["quantity"],
            )
        )
        return ok(CartSerializer(cart).data, "Item added to cart.")

    @action(
        detail=False,
        methods=["put"],
        url_path="updateQuantity",
        url_name="update-quantity",
    )
    def update_quantity(self, request: Request) -> Response:
        """PUT /api/v1/cart/updateQuantity"""
        serializer = UpdateQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart = self._service.update_item_quantity(
            UpdateQuantityDTO(
                client_id=data["clientId"],
                item_id=data["itemId"],
                quantity=data["quantity"],
            )
        )
        return ok(CartSerializer(cart).data, "Quantity updated.")

    @action(
        detail=False, methods=["delete"], url_path="removeItem", url_name="remove-item"
    )
    def remove_item(self, request: Request) -> Response:
        """DELETE /api/v1/cart/removeItem"""
        serializer = RemoveItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart = self._service.remove_item(
            RemoveItemDTO(client_id=data["clientId"], item_id=data["itemId"])
        )
        return ok(CartSerializer(cart).data, "Item removed from cart.")

    @action(
        detail=True,
        methods=["post"],
        url_path="clearAfterPurchase",
        url_name="clear-after-purchase",
    )
    def clear_after_purchase(self, request: Request, cart_id: str) -> Response:
        """POST /api/v1/cart/{cartId}/clearAfterPurchase"""
        serializer = ClearAfterPurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        active = self._service.clear_after_purchase(
            cart_id, serializer.validated_data["userId"]
        )
        return ok(
            {"archivedCartId": cart_id, "activeCart": CartSerializer(active).data},
            "Cart archived after purchase.",
        )

    @action(
        detail=False,
        methods=["post"],
        url_path="cleanupDuplicates",
        url_name="cleanup-duplicates",
    )
    def cleanup_duplicates(self, request: Request) -> Response:
        """POST /api/v1/cart/cleanupDuplicates"""
        report = self._service.cleanup_duplicate_carts()
        return ok(
            report.model_dump(mode="json", by_alias=True),
            "Duplicate carts cleaned up.",
            status=status.HTTP_200_OK,
        )
