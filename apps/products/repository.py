"""Product module repository implementation."""

from typing import List
from framework.repository.base import BaseRepository
from .models import Product, ProductPo, ProductProperty, ProductType


class ProductRepository(BaseRepository[Product, ProductPo]):
    """Product repository."""

    def __init__(self, unit_of_work):
        super().__init__(unit_of_work, Product, ProductPo)

    def to_entity(self, row: ProductPo) -> Product:
        product_type = None
        if row.type_name is not None:
            product_type = ProductType(
                name=row.type_name,
                properties=[ProductProperty(**item) for item in row.type_properties or []],
            )
        return Product(
            id=row.id,
            name=row.name,
            code=row.code,
            version=row.version,
            product_type=product_type,
        )

    def to_row(self, entity: Product) -> ProductPo:
        product_type = entity.product_type
        return ProductPo(
            id=entity.id,
            name=entity.name,
            code=entity.code,
            version=entity.version,
            type_name=product_type.name if product_type else None,
            type_properties=(
                [item.model_dump() for item in product_type.properties] if product_type else None
            ),
        )

    def get_by_code(self, code: str) -> List[Product]:
        """Find products by code."""
        return self.find_all(code=code)

    async def get_by_code_async(self, code: str) -> List[Product]:
        return await self.find_all_async(code=code)

    def get_by_type_name(self, type_name: str) -> List[Product]:
        """Find products whose owned type has the given name."""
        return self.find_all(type_name=type_name)
