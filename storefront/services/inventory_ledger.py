# storefront/services/inventory_ledger.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import InsufficientStock, NotFound, StockLimitExceeded, ValidationFailed
from storefront.utils.settings import MAX_PRODUCT_STOCK
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryLedger:
    """
    The only writer of ProductModel.stock.

    reserve/release are single conditional UPDATE statements, so the check and
    the write happen atomically in the store:

        UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

    Two concurrent reservations that together exceed stock cannot both match.
    Neither method commits; the caller owns the transaction.
    """

    def __init__(self, db: Session, max_stock: int = MAX_PRODUCT_STOCK):
        self.db = db
        self.max_stock = max_stock

    def reserve(self, product_id: int, quantity: int) -> None:
        self._check_quantity(quantity)

        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            product = self._require_product(product_id)
            logger.warning(
                f"Reservation rejected for product {product_id}: "
                f"requested {quantity}, available {product.stock}"
            )
            raise InsufficientStock(product_id, quantity, available=product.stock, name=product.name)

        logger.info(f"Reserved {quantity} of product {product_id}")

    def release(self, product_id: int, quantity: int) -> None:
        self._check_quantity(quantity)

        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.stock + quantity <= self.max_stock,
            )
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            product = self._require_product(product_id)
            raise StockLimitExceeded(
                f"Releasing {quantity} of product {product_id} would exceed "
                f"the stock limit {self.max_stock} (current {product.stock})"
            )

        logger.info(f"Released {quantity} of product {product_id}")

    def _require_product(self, product_id: int) -> ProductModel:
        product = self.db.get(ProductModel, product_id, populate_existing=True)
        if not product:
            raise NotFound(f"Product {product_id} not found")
        return product

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0")
