"""Checkout URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.checkout.views import SaleViewSet

router = DefaultRouter(trailing_slash=False)
router.register("sales", SaleViewSet, basename="sale")

urlpatterns = router.urls
