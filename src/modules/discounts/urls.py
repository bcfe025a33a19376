"""Discount URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.discounts.views import CartDiscountViewSet, ClientDiscountCodeViewSet

router = DefaultRouter(trailing_slash=False)
router.register("cart", CartDiscountViewSet, basename="cart-discount")
router.register("clients", ClientDiscountCodeViewSet, basename="client-discount-code")

urlpatterns = router.urls
