"""Django ORM implementation of the Catalog repository."""

from __future__ import annotations

from typing import Optional

from django.core.exceptions import ValidationError

from modules.catalog.constants import ItemType, ProductStatus
from modules.catalog.dtos import PricedItemDTO
from modules.catalog.models import CustomProduct, Product
from modules.catalog.repositories.interfaces import ICatalogRepository


class CatalogDjangoRepository(ICatalogRepository):
    """Prices products by ``price`` and custom products by ``total_price``."""

    def get_priced_item(self, item_type: str, item_id: str) -> Optional[PricedItemDTO]:
        try:
            if item_type == ItemType.PRODUCT:
                product = (
                    Product.objects.alive()
                    .filter(id=item_id, status=ProductStatus.ACTIVE)
                    .first()
                )
                if not product:
                    return None
                return PricedItemDTO(
                    item_type=ItemType.PRODUCT,
                    item_id=product.id,
                    name=product.name,
                    unit_price=product.price,
                )

            if item_type == ItemType.CUSTOM_PRODUCT:
                custom = CustomProduct.objects.alive().filter(id=item_id).first()
                if not custom:
                    return None
                return PricedItemDTO(
                    item_type=ItemType.CUSTOM_PRODUCT,
                    item_id=custom.id,
                    name=custom.name,
                    unit_price=custom.total_price,
                )
        except (ValueError, ValidationError):
            return None
        return None
