# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import Database
from storefront.data.models.product import ProductModel
from storefront.utils.settings import DATABASE_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {"name": "Keyboard", "price": Decimal("199.99"), "stock": 25, "seller_id": 1},
    {"name": "Mouse", "price": Decimal("49.50"), "stock": 100, "seller_id": 1},
    {"name": "Monitor", "price": Decimal("899.00"), "stock": 5, "seller_id": 2},
]


def seed(database: Database) -> int:
    """Insert the dev catalog, only when there are no products yet."""
    database.create_all()
    db = database.session()
    try:
        if db.query(ProductModel).first():
            return 0
        db.add_all(ProductModel(**p) for p in PRODUCTS)
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products")
        return len(PRODUCTS)
    finally:
        db.close()


if __name__ == "__main__":
    seed(Database(DATABASE_URL))
