# storefront/services/order_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import AccessDenied, InvalidTransition, NotFound, ValidationFailed
from storefront.domain.principal import Principal
from storefront.domain.schemas import OrderItemOut, OrderOut
from storefront.domain.states import order_transition_allowed, validate_order_status
from storefront.repos.order_repo import OrderRepo
from storefront.services.inventory_ledger import InventoryLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

MANAGEMENT_ROLES = ("admin", "seller")


def order_to_view(order: OrderModel) -> OrderOut:
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        items=[
            OrderItemOut(
                product_id=item.product_id,
                name=item.product.name if item.product else None,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=(Decimal(item.unit_price) * item.quantity).quantize(Decimal("0.01")),
            )
            for item in order.items
        ],
        total=order.total,
        shipping_address=order.shipping_address,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


class OrderService:
    """
    Query and management side of orders.
    Orders are only created by CheckoutService.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.inventory = InventoryLedger(db)

    def get_order(self, principal: Principal, order_id: int) -> OrderOut:
        return order_to_view(self._load(principal, order_id))

    def list_orders(self, principal: Principal, user_id: int | None = None) -> list[OrderOut]:
        if not principal.is_admin:
            user_id = principal.user_id
        return [order_to_view(o) for o in self.repo.list_orders(user_id=user_id)]

    def update_status(self, principal: Principal, order_id: int, new_status: str) -> OrderOut:
        return self.update_order(principal, order_id, new_status=new_status)

    def update_order(
        self,
        principal: Principal,
        order_id: int,
        new_status: str | None = None,
        shipping_address: str | None = None,
    ) -> OrderOut:
        """
        Use Case: management update of status and/or shipping address.

        Everything is validated before anything is written, and both fields
        land in one commit. Moving into `cancelled` returns the reserved
        stock; moving a cancelled order back out reserves it again.
        """
        if principal.role not in MANAGEMENT_ROLES:
            raise AccessDenied("Only admins and sellers can update orders")

        if new_status is None and shipping_address is None:
            raise ValidationFailed("Nothing to update, provide status or shipping address")

        if new_status is not None:
            validate_order_status(new_status)

        address = None
        if shipping_address is not None:
            address = shipping_address.strip()
            if not address:
                raise ValidationFailed("Shipping address must not be blank")

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order not found")

        current = order.status
        target = current if new_status is None else new_status
        if not order_transition_allowed(current, target):
            raise InvalidTransition("order", current, target)

        if target == current and (address is None or address == order.shipping_address):
            return order_to_view(order)

        try:
            if target != current:
                if target == "cancelled":
                    for item in order.items:
                        self.inventory.release(item.product_id, item.quantity)
                elif current == "cancelled":
                    for item in order.items:
                        self.inventory.reserve(item.product_id, item.quantity)

            #guard against a parallel status change since we read the order
            if self.repo.set_status(order_id, target, only_from=current) == 0:
                raise InvalidTransition("order", current, target)

            if address is not None:
                self.repo.set_shipping_address(order_id, address)

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if target != current:
            logger.info(
                f"Order {order_id} status {current} -> {target} by {principal.role} {principal.user_id}"
            )
        if address is not None:
            logger.info(f"Order {order_id} shipping address changed by {principal.role} {principal.user_id}")
        return order_to_view(self.repo.get_order(order_id))

    def delete_order(self, principal: Principal, order_id: int) -> None:
        if not principal.is_admin:
            raise AccessDenied("Only admins can delete orders")

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order not found")

        self.repo.delete_order(order)
        self.repo.commit()
        logger.info(f"Order {order_id} deleted by admin {principal.user_id}")

    def _load(self, principal: Principal, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order not found")
        if not principal.can_access(order.user_id):
            raise AccessDenied("Unauthorized")
        return order
