# storefront/services/checkout_service.py
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import ConcurrentModification, InsufficientStock, NotFound, ValidationFailed
from storefront.domain.schemas import OrderOut
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.inventory_ledger import InventoryLedger
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import order_to_view
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class _Line:
    product: ProductModel
    quantity: int
    unit_price: Decimal


class CheckoutService:
    """
    Turns the caller's cart into an order.

    All validation happens before the first write. The writes (stock
    reservations, order insert, cart clear, cart version bump) then go into a
    single store transaction, so either all of them land or none do.
    """

    def __init__(self, db: Session, notifier: NotificationService | None = None):
        self.db = db
        self.carts = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.orders = OrderRepo(db)
        self.inventory = InventoryLedger(db)
        self.notifier = notifier or NotificationService()

    def checkout(self, user_id: int, shipping_address: str) -> OrderOut:
        """
        Use Case: place an order from the cart.

        1. Re-validate every cart line against live product stock
        2. Snapshot unit prices and compute the total
        3. Reserve stock for every line
        4. Create the order in `pending`
        5. Empty the cart (the cart row itself stays)
        """
        address = (shipping_address or "").strip()
        if not address:
            raise ValidationFailed("Please provide shipping address")

        cart = self.carts.get_cart_by_user(user_id)
        items = self.carts.get_cart_items(cart.id) if cart else []
        if not items:
            raise ValidationFailed("Cart is empty")

        lines = self._validate(items)
        total = sum((line.unit_price * line.quantity for line in lines), Decimal("0.00")).quantize(CENT)

        try:
            for line in lines:
                self.inventory.reserve(line.product.id, line.quantity)

            order = self.orders.add_order(
                OrderModel(
                    user_id=user_id,
                    status="pending",
                    total=total,
                    shipping_address=address,
                    items=[
                        OrderItemModel(
                            product_id=line.product.id,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                        )
                        for line in lines
                    ],
                )
            )

            self.carts.clear_items(items)
            if self.carts.update_cart_version(cart.id, cart.version) == 0:
                # cart changed since we validated it, nothing of this checkout may stick
                raise ConcurrentModification(
                    "Cart was modified during checkout, please review it and retry"
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order {order.id} placed by user {user_id} from cart {cart.id}: "
            f"{len(lines)} line(s), total {total}"
        )
        try:
            self.notifier.send_order_placed(user_id, order.id)
        except Exception as e:
            # the order is committed, a lost notification must not turn it into an error
            logger.warning(f"Order {order.id} placed but notification failed: {e}")

        return order_to_view(self.orders.get_order(order.id))

    def _validate(self, items) -> list[_Line]:
        lines = []
        for item in items:
            product = self.catalog.get_product(item.product_id)
            if not product:
                raise NotFound(f"Product {item.product_id} not found")

            if product.stock < item.quantity:
                logger.warning(
                    f"Checkout rejected: product {product.id} stock {product.stock} "
                    f"< requested {item.quantity}"
                )
                raise InsufficientStock(
                    product.id, item.quantity, available=product.stock, name=product.name
                )

            lines.append(_Line(product=product, quantity=item.quantity, unit_price=Decimal(product.price)))
        return lines
