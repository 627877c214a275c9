from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import (
    ConcurrentModification,
    InsufficientStock,
    NotFound,
    ValidationFailed,
)
from storefront.domain.schemas import CartItemOut, CartOut
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use cases of the cart aggregate.
    commands (add, set quantity, remove) change state and bump the cart version,
    query (get) returns the cart expanded with live product data.

    Stock is re-read from the catalog on every command; nothing is cached
    between calls.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)

    #query
    def get_cart(self, user_id: int) -> CartOut:
        cart = self.get_or_create(user_id)
        return self._to_view(cart)

    def get_or_create(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart:
            return cart

        try:
            created = self.repo.create_cart(CartModel(user_id=user_id, version=1))
        except IntegrityError:
            #parallel request created it first, unique index on user_id won
            self.repo.rollback()
            cart = self.repo.get_cart_by_user(user_id)
            if cart is None:
                raise
            logger.info(f"Cart for user {user_id} created concurrently, using cart {cart.id}")
            return cart

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    #commands
    def add_item(self, user_id: int, product_id: int, quantity: int) -> CartOut:
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0")

        product = self.catalog.get_product(product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found")

        cart = self.get_or_create(user_id)
        existing_item = self.repo.get_cart_item(cart.id, product_id)

        #check against what the cart will hold after the merge, not the increment
        merged = quantity + (existing_item.quantity if existing_item else 0)
        if product.stock < merged:
            raise InsufficientStock(product_id, merged, available=product.stock, name=product.name)

        if existing_item:
            logger.info(
                f"Product {product_id} already in cart {cart.id}, "
                f"quantity {existing_item.quantity} -> {merged}"
            )
            existing_item.quantity = merged
        else:
            logger.info(f"Adding product {product_id} x{quantity} to cart {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity)
            )

        self._commit_versioned(cart)
        return self.get_cart(user_id)

    def set_quantity(self, user_id: int, product_id: int, quantity: int) -> CartOut:
        if quantity < 0:
            raise ValidationFailed("Quantity must not be negative")

        cart = self.get_or_create(user_id)
        item = self.repo.get_cart_item(cart.id, product_id)
        if not item:
            raise NotFound(f"Product {product_id} is not in the cart")

        if quantity == 0:
            logger.info(f"Quantity 0, removing product {product_id} from cart {cart.id}")
            self.repo.delete_cart_item(item)
        else:
            product = self.catalog.get_product(product_id)
            if not product:
                raise NotFound(f"Product {product_id} not found")
            if product.stock < quantity:
                raise InsufficientStock(product_id, quantity, available=product.stock, name=product.name)
            item.quantity = quantity

        self._commit_versioned(cart)
        return self.get_cart(user_id)

    def remove_item(self, user_id: int, product_id: int) -> CartOut:
        cart = self.get_or_create(user_id)
        item = self.repo.get_cart_item(cart.id, product_id)

        if item:
            logger.info(f"Removing product {product_id} from cart {cart.id}")
            self.repo.delete_cart_item(item)
            self._commit_versioned(cart)

        return self.get_cart(user_id)

    def _commit_versioned(self, cart: CartModel) -> None:
        # optimistic locking on the version column
        # e.g. UPDATE carts SET version = 2 WHERE id = 1 AND version = 1
        try:
            rowcount = self.repo.update_cart_version(cart.id, cart.version)
            if rowcount == 0:
                raise ConcurrentModification(
                    "Cart was modified by another request, please retry"
                )
            self.repo.commit()
        except IntegrityError:
            #same product inserted twice by parallel adds (u_cart_product)
            self.repo.rollback()
            raise ConcurrentModification("Cart was modified by another request, please retry")
        except ConcurrentModification:
            self.repo.rollback()
            raise

    def _to_view(self, cart: CartModel) -> CartOut:
        items = []
        subtotal = Decimal("0.00")

        for item in self.repo.get_cart_items(cart.id):
            product = self.catalog.get_product(item.product_id)
            if product is None:
                logger.warning(f"Cart {cart.id} references missing product {item.product_id}")
                continue
            price = Decimal(product.price)
            subtotal += price * item.quantity
            items.append(
                CartItemOut(
                    product_id=item.product_id,
                    name=product.name,
                    quantity=item.quantity,
                    unit_price=price,
                    stock=product.stock,
                )
            )

        return CartOut(
            cart_id=cart.id,
            user_id=cart.user_id,
            items=items,
            subtotal=subtotal.quantize(Decimal("0.01")),
            version=cart.version,
        )
