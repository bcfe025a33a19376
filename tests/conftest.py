from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.services import CartService
from modules.catalog.models import CustomProduct, Product
from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.checkout.repositories.django_repository import SaleDjangoRepository
from modules.checkout.services import CheckoutService
from modules.clients.models import Client, DiscountCodeGrant
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.discounts.services import DiscountService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; never leak them between tests."""
    cache.clear()
    yield
    cache.clear()


# ---------------------------------------------------------------------------
# API clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    User = get_user_model()
    return User.objects.create_user(username="storefront", password="testpass123")


@pytest.fixture()
def auth_client(user):
    """APIClient authenticated without a relayable credential."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def session_token(user):
    return str(AccessToken.for_user(user))


@pytest.fixture()
def token_client(session_token):
    """APIClient carrying a real JWT in the ``authToken`` cookie."""
    client = APIClient()
    client.cookies["authToken"] = session_token
    return client


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def client_factory():
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "name": f"Cliente {counter['n']}",
            "email": f"cliente{counter['n']}@example.com",
            "phone": "77778888",
        }
        data.update(overrides)
        return Client.objects.create(**data)

    return _make


@pytest.fixture()
def shop_client(client_factory):
    return client_factory(name="María López", email="maria@example.com")


@pytest.fixture()
def product():
    return Product.objects.create(name="Caja de chocolates", price=Decimal("10.00"))


@pytest.fixture()
def other_product():
    return Product.objects.create(name="Peluche de oso", price=Decimal("18.00"))


@pytest.fixture()
def custom_product(shop_client):
    return CustomProduct.objects.create(
        name="Canasta personalizada",
        client=shop_client,
        materials=[{"name": "Canasta", "price": "8.00"}, {"name": "Lazo", "price": "4.50"}],
        total_price=Decimal("12.50"),
    )


@pytest.fixture()
def grant_factory(shop_client):
    def _make(**overrides):
        data = {
            "client": shop_client,
            "code_id": "code-ruleta10",
            "code": "RULETA10",
            "name": "10% de descuento",
            "discount": "10%",
            "color": "#FF6B6B",
            "text_color": "#FFFFFF",
            "expires_at": timezone.now() + timedelta(days=30),
        }
        data.update(overrides)
        return DiscountCodeGrant.objects.create(**data)

    return _make


@pytest.fixture()
def grant(grant_factory):
    return grant_factory()


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def cart_repository():
    return CartDjangoRepository()


@pytest.fixture()
def sale_repository():
    return SaleDjangoRepository()


@pytest.fixture()
def cart_service(cart_repository):
    return CartService(
        cart_repository=cart_repository,
        client_repository=ClientDjangoRepository(),
        catalog_repository=CatalogDjangoRepository(),
    )


@pytest.fixture()
def discount_service(cart_service, cart_repository, sale_repository):
    return DiscountService(
        cart_service=cart_service,
        cart_repository=cart_repository,
        client_repository=ClientDjangoRepository(),
        sale_repository=sale_repository,
    )


@pytest.fixture()
def proof_storage():
    storage = Mock()
    storage.upload.return_value = "https://res.cloudinary.com/demo/image/upload/proof.png"
    return storage


@pytest.fixture()
def reconcile_scheduler():
    return Mock()


@pytest.fixture()
def checkout_service(
    sale_repository,
    cart_repository,
    cart_service,
    discount_service,
    proof_storage,
    reconcile_scheduler,
):
    return CheckoutService(
        sale_repository=sale_repository,
        cart_repository=cart_repository,
        cart_service=cart_service,
        discount_service=discount_service,
        proof_storage=proof_storage,
        reconcile_scheduler=reconcile_scheduler,
    )
