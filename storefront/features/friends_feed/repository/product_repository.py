"""
Product catalog access used by the similarity lookup and ingestion.
"""

from collections.abc import Iterable
from typing import Any

from storefront.db.helpers import execute_transaction, fetch_all, fetch_one
from storefront.features.friends_feed.domain.models import Product

_COLUMNS = "id, name, category, brand, price, mrp, image_url"


class ProductCatalogRepository:
    @staticmethod
    def row_to_product(row: dict[str, Any]) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            category=row.get("category"),
            brand=row.get("brand"),
            price=float(row.get("price") or 0),
            mrp=float(row["mrp"]) if row.get("mrp") is not None else None,
            image_url=row.get("image_url"),
        )

    @staticmethod
    async def find_by_id(product_id: str) -> Product | None:
        row = await fetch_one(f"SELECT {_COLUMNS} FROM products WHERE id = %s", (product_id,))
        return ProductCatalogRepository.row_to_product(row) if row else None

    @staticmethod
    async def find_similar_candidates(
        target: Product, limit: int, price_band: float
    ) -> list[Product]:
        """Products sharing category or brand, or priced within the band, target excluded."""
        rows = await fetch_all(
            f"""
            SELECT {_COLUMNS}
            FROM products
            WHERE id <> %s
              AND (
                    category = %s
                 OR brand = %s
                 OR price BETWEEN %s AND %s
              )
            ORDER BY id
            LIMIT %s
            """,
            (
                target.id,
                target.category,
                target.brand,
                target.price * (1 - price_band),
                target.price * (1 + price_band),
                limit,
            ),
        )
        return [ProductCatalogRepository.row_to_product(row) for row in rows]

    @staticmethod
    async def upsert_products(products: Iterable[Product]) -> int:
        queries = [
            (
                """
                INSERT INTO products (id, name, category, brand, price, mrp, image_url)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE
                SET name = EXCLUDED.name,
                    category = EXCLUDED.category,
                    brand = EXCLUDED.brand,
                    price = EXCLUDED.price,
                    mrp = EXCLUDED.mrp,
                    image_url = EXCLUDED.image_url,
                    updated_at = NOW()
                """,
                (p.id, p.name, p.category, p.brand, p.price, p.mrp, p.image_url),
            )
            for p in products
        ]
        if not queries:
            return 0
        await execute_transaction(queries)
        return len(queries)
