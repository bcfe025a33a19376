"""Discount API views.

``CartDiscountViewSet`` serves the pending/confirm routes nested under a cart;
``ClientDiscountCodeViewSet`` flips a client's code grant to used.
"""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.serializers import CartSerializer
from modules.carts.services import CartService
from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.checkout.repositories.django_repository import SaleDjangoRepository
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.responses import ok
from modules.core.session import SessionTokenRelayMixin
from modules.discounts.serializers import (
    ApplyDiscountSerializer,
    DiscountGrantSerializer,
    OrderReferenceSerializer,
)
from modules.discounts.services import DiscountService


def _build_discount_service() -> DiscountService:
    cart_repository = CartDjangoRepository()
    client_repository = ClientDjangoRepository()
    return DiscountService(
        cart_service=CartService(
            cart_repository=cart_repository,
            client_repository=client_repository,
            catalog_repository=CatalogDjangoRepository(),
        ),
        cart_repository=cart_repository,
        client_repository=client_repository,
        sale_repository=SaleDjangoRepository(),
    )


class CartDiscountViewSet(SessionTokenRelayMixin, GenericViewSet):
    """Discount routes under ``/api/v1/cart/{cartId}``."""

    serializer_class = CartSerializer
    lookup_url_kwarg = "cart_id"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _build_discount_service()

    @action(
        detail=True,
        methods=["put", "delete"],
        url_path="pendingDiscount",
        url_name="pending-discount",
    )
    def pending_discount(self, request: Request, cart_id: str) -> Response:
        """PUT / DELETE /api/v1/cart/{cartId}/pendingDiscount"""
        if request.method == "DELETE":
            cart = self._service.remove_pending_discount(cart_id)
            return ok(CartSerializer(cart).data, "Pending discount removed.")

        serializer = ApplyDiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = self._service.apply_pending_discount(
            cart_id, serializer.validated_data["code"]
        )
        return ok(CartSerializer(cart).data, "Pending discount applied.")

    @action(
        detail=True,
        methods=["post"],
        url_path="confirmDiscount",
        url_name="confirm-discount",
    )
    def confirm_discount(self, request: Request, cart_id: str) -> Response:
        """POST /api/v1/cart/{cartId}/confirmDiscount"""
        serializer = OrderReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = self._service.confirm_discount(
            cart_id, serializer.validated_data["orderId"]
        )
        return ok(CartSerializer(cart).data, "Discount confirmed.")


class ClientDiscountCodeViewSet(SessionTokenRelayMixin, GenericViewSet):
    """Code-grant routes under ``/api/v1/clients/{clientId}``."""

    serializer_class = DiscountGrantSerializer
    lookup_url_kwarg = "client_id"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _build_discount_service()

    @action(
        detail=True,
        methods=["post"],
        url_path=r"discountCodes/(?P<code_id>[^/.]+)/use",
        url_name="use-discount-code",
    )
    def use_discount_code(
        self, request: Request, client_id: str, code_id: str
    ) -> Response:
        """POST /api/v1/clients/{clientId}/discountCodes/{codeId}/use"""
        serializer = OrderReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grant = self._service.mark_code_used(
            client_id, code_id, serializer.validated_data["orderId"]
        )
        return ok(DiscountGrantSerializer(grant).data, "Discount code marked as used.")
