from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from modules.catalog.models import CustomProduct, Product
from modules.clients.models import Client, DiscountCodeGrant


class Command(BaseCommand):
    help = "Seed the database with a demo client, catalog and discount codes."

    def handle(self, *args, **options):
        self.stdout.write("Seeding development data...")

        user = self._seed_user()
        client = self._seed_client()
        products = self._seed_products()
        custom = self._seed_custom_product(client)
        grants = self._seed_grants(client)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"client={client.id}, "
                f"products={len(products)}, "
                f"custom_product={custom.id}, "
                f"discount_codes={len(grants)}"
            )
        )
        self.stdout.write(f"Access token for '{user.username}': {AccessToken.for_user(user)}")

    def _seed_user(self):
        User = get_user_model()
        user, created = User.objects.get_or_create(username="storefront")
        if created:
            user.set_password("storefront123")
            user.save()
        return user

    def _seed_client(self) -> Client:
        client, _ = Client.objects.get_or_create(
            email="maria.lopez@example.com",
            defaults={
                "name": "María López",
                "phone": "77778888",
                "address": "Colonia Escalón, San Salvador",
            },
        )
        return client

    def _seed_products(self) -> list[Product]:
        catalog = [
            ("Ramo de rosas rojas", Decimal("25.00")),
            ("Caja de chocolates", Decimal("12.50")),
            ("Peluche de oso", Decimal("18.00")),
            ("Tarjeta de felicitación", Decimal("3.75")),
        ]
        products = []
        for name, price in catalog:
            product, _ = Product.objects.get_or_create(name=name, defaults={"price": price})
            products.append(product)
        return products

    def _seed_custom_product(self, client: Client) -> CustomProduct:
        materials = [
            {"name": "Canasta de mimbre", "price": "8.00"},
            {"name": "Rosas blancas x6", "price": "9.00"},
            {"name": "Lazo de satén", "price": "1.50"},
        ]
        custom, _ = CustomProduct.objects.get_or_create(
            name="Canasta personalizada",
            client=client,
            defaults={
                "materials": materials,
                "total_price": sum(Decimal(m["price"]) for m in materials),
            },
        )
        return custom

    def _seed_grants(self, client: Client) -> list[DiscountCodeGrant]:
        wheel = [
            ("RULETA10", "10% de descuento", "10%", "#FF6B6B"),
            ("RULETA15", "15% de descuento", "15%", "#4ECDC4"),
        ]
        grants = []
        for code, name, discount, color in wheel:
            grant, _ = DiscountCodeGrant.objects.get_or_create(
                client=client,
                code_id=f"seed-{code.lower()}",
                defaults={
                    "code": code,
                    "name": name,
                    "discount": discount,
                    "color": color,
                    "text_color": "#FFFFFF",
                    "expires_at": timezone.now() + timedelta(days=30),
                },
            )
            grants.append(grant)
        return grants
