"""Checkout API views.

``POST /api/v1/sales`` is the wizard's confirm step; list / retrieve expose
the resulting orders and two PATCH actions move their payment and tracking
status forward.  Creation is throttled with the ``checkout`` scope.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.checkout.dtos import CreateSaleDTO, ShippingDetailsDTO
from modules.checkout.filters import SaleFilter
from modules.checkout.serializers import (
    CreateSaleSerializer,
    PaymentStatusSerializer,
    SaleSerializer,
    TrackingStatusSerializer,
)
from modules.checkout.services import build_checkout_service
from modules.core.responses import ok
from modules.core.session import SessionTokenRelayMixin


class SaleViewSet(SessionTokenRelayMixin, GenericViewSet):
    """Does **not** extend ``ModelViewSet``; persistence goes through the
    service/repository layer."""

    serializer_class = SaleSerializer
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    filterset_class = SaleFilter
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_checkout_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "checkout" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_sales()

    def create(self, request: Request) -> Response:
        """POST /api/v1/sales (multipart)"""
        serializer = CreateSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        sale = self._service.confirm(
            CreateSaleDTO(
                client_id=data["clientId"],
                shipping=ShippingDetailsDTO(
                    receiver_name=data["receiverName"],
                    receiver_phone=data["receiverPhone"],
                    delivery_address=data["deliveryAddress"],
                    delivery_point=data["deliveryPoint"],
                    delivery_date=data["deliveryDate"],
                ),
                payment_type=data["paymentType"],
                payment_proof=data.get("paymentProof"),
            )
        )
        return ok(
            SaleSerializer(sale).data,
            "Order created.",
            status=status.HTTP_201_CREATED,
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/sales"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is None:
            return ok(SaleSerializer(queryset, many=True).data, "Orders retrieved.")
        paginated = self.get_paginated_response(SaleSerializer(page, many=True).data)
        return ok(paginated.data, "Orders retrieved.")

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/sales/{id}"""
        sale = self._service.get_sale(pk)
        return ok(SaleSerializer(sale).data, "Order retrieved.")

    @action(
        detail=True,
        methods=["patch"],
        url_path="paymentStatus",
        url_name="payment-status",
    )
    def payment_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/sales/{id}/paymentStatus"""
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = self._service.update_payment_status(
            pk, serializer.validated_data["status"]
        )
        return ok(SaleSerializer(sale).data, "Payment status updated.")

    @action(
        detail=True,
        methods=["patch"],
        url_path="trackingStatus",
        url_name="tracking-status",
    )
    def tracking_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/sales/{id}/trackingStatus"""
        serializer = TrackingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = self._service.update_tracking_status(
            pk, serializer.validated_data["trackingStatus"]
        )
        return ok(SaleSerializer(sale).data, "Tracking status updated.")
