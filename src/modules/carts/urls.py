"""Cart URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.carts.views import CartViewSet

router = DefaultRouter(trailing_slash=False)
router.register("cart", CartViewSet, basename="cart")

urlpatterns = router.urls
