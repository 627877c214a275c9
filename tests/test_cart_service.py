"""Tests for CartService."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from storefront.data.models.cart import CartModel
from storefront.domain.errors import ConcurrentModification, InsufficientStock, NotFound, ValidationFailed
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_service import CartService


class TestGetCart:
    def test_creates_empty_cart_on_first_access(self, db):
        cart = CartService(db).get_cart(1)

        assert cart.user_id == 1
        assert cart.items == []
        assert db.query(CartModel).count() == 1

    def test_second_access_returns_same_cart(self, db):
        svc = CartService(db)
        first = svc.get_cart(1)
        second = svc.get_cart(1)

        assert first.cart_id == second.cart_id
        assert db.query(CartModel).count() == 1

    def test_create_race_falls_back_to_existing_cart(self, db):
        existing = CartRepo(db).create_cart(CartModel(user_id=7, version=1))
        existing_id = existing.id
        svc = CartService(db)

        # first lookup misses (the other request has not committed yet), insert hits the unique index
        real_lookup = svc.repo.get_cart_by_user
        calls = {"n": 0}

        def racing_lookup(user_id):
            calls["n"] += 1
            return None if calls["n"] == 1 else real_lookup(user_id)

        with patch.object(svc.repo, "get_cart_by_user", side_effect=racing_lookup):
            cart = svc.get_cart(7)

        assert cart.cart_id == existing_id
        assert db.query(CartModel).filter_by(user_id=7).count() == 1

    def test_unique_owner_enforced_by_store(self, db):
        CartRepo(db).create_cart(CartModel(user_id=3, version=1))
        with pytest.raises(IntegrityError):
            CartRepo(db).create_cart(CartModel(user_id=3, version=1))
        db.rollback()


class TestAddItem:
    def test_add_new_item(self, db, make_product):
        product = make_product(name="Mug", price="7.50", stock=5)

        cart = CartService(db).add_item(1, product.id, 2)

        assert len(cart.items) == 1
        assert cart.items[0].product_id == product.id
        assert cart.items[0].quantity == 2
        assert str(cart.subtotal) == "15.00"

    def test_add_existing_item_merges_quantity(self, db, make_product):
        product = make_product(stock=5)
        svc = CartService(db)

        svc.add_item(1, product.id, 2)
        cart = svc.add_item(1, product.id, 3)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_merged_quantity_checked_against_stock(self, db, make_product):
        product = make_product(stock=5)
        svc = CartService(db)
        svc.add_item(1, product.id, 3)

        # 3 more is fine on its own but 6 in total is not
        with pytest.raises(InsufficientStock):
            svc.add_item(1, product.id, 3)

        assert svc.get_cart(1).items[0].quantity == 3

    def test_add_reads_live_stock(self, db, make_product):
        product = make_product(stock=5)
        svc = CartService(db)
        svc.add_item(1, product.id, 1)

        product.stock = 1
        db.commit()

        with pytest.raises(InsufficientStock):
            svc.add_item(1, product.id, 1)

    def test_add_unknown_product(self, db):
        with pytest.raises(NotFound):
            CartService(db).add_item(1, 424242, 1)

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_add_non_positive_quantity(self, db, make_product, quantity):
        product = make_product()
        with pytest.raises(ValidationFailed):
            CartService(db).add_item(1, product.id, quantity)

    def test_mutation_bumps_version(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        before = svc.get_cart(1).version

        after = svc.add_item(1, product.id, 1).version

        assert after == before + 1

    def test_stale_version_rejects_add(self, db, make_product, monkeypatch):
        product = make_product(stock=10)
        svc = CartService(db)
        svc.add_item(1, product.id, 2)
        version = svc.get_cart(1).version

        #a parallel request committed first and moved the version on
        monkeypatch.setattr(svc.repo, "update_cart_version", lambda cart_id, old_version: 0)

        with pytest.raises(ConcurrentModification):
            svc.add_item(1, product.id, 3)

        monkeypatch.undo()
        cart = svc.get_cart(1)
        assert [(i.product_id, i.quantity) for i in cart.items] == [(product.id, 2)]
        assert cart.version == version

    def test_stale_version_rejects_new_line(self, db, make_product, monkeypatch):
        first = make_product(name="first")
        second = make_product(name="second")
        svc = CartService(db)
        svc.add_item(1, first.id, 1)

        monkeypatch.setattr(svc.repo, "update_cart_version", lambda cart_id, old_version: 0)

        with pytest.raises(ConcurrentModification):
            svc.add_item(1, second.id, 1)

        monkeypatch.undo()
        assert [i.product_id for i in svc.get_cart(1).items] == [first.id]

    def test_parallel_insert_of_same_product_rejected(self, db, make_product, monkeypatch):
        product = make_product(stock=10)
        svc = CartService(db)
        svc.add_item(1, product.id, 2)

        # the other request's line was not visible when we looked, the unique index catches it
        monkeypatch.setattr(svc.repo, "get_cart_item", lambda cart_id, product_id: None)

        with pytest.raises(ConcurrentModification):
            svc.add_item(1, product.id, 1)

        monkeypatch.undo()
        assert [(i.product_id, i.quantity) for i in svc.get_cart(1).items] == [(product.id, 2)]


class TestSetQuantity:
    def test_zero_removes_line(self, db, make_product):
        x = make_product(name="X")
        y = make_product(name="Y")
        svc = CartService(db)
        svc.add_item(1, x.id, 2)
        svc.add_item(1, y.id, 1)

        cart = svc.set_quantity(1, x.id, 0)

        assert [i.product_id for i in cart.items] == [y.id]

    def test_positive_quantity_replaces(self, db, make_product):
        product = make_product(stock=10)
        svc = CartService(db)
        svc.add_item(1, product.id, 2)

        cart = svc.set_quantity(1, product.id, 7)

        assert cart.items[0].quantity == 7

    def test_quantity_above_stock_rejected(self, db, make_product):
        product = make_product(stock=3)
        svc = CartService(db)
        svc.add_item(1, product.id, 1)

        with pytest.raises(InsufficientStock):
            svc.set_quantity(1, product.id, 4)

    def test_negative_quantity_rejected(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        svc.add_item(1, product.id, 1)

        with pytest.raises(ValidationFailed):
            svc.set_quantity(1, product.id, -1)

    def test_item_not_in_cart(self, db, make_product):
        product = make_product()
        with pytest.raises(NotFound):
            CartService(db).set_quantity(1, product.id, 1)


class TestRemoveItem:
    def test_remove_item(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        svc.add_item(1, product.id, 1)

        cart = svc.remove_item(1, product.id)

        assert cart.items == []

    def test_remove_absent_item_is_noop(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        version = svc.get_cart(1).version

        cart = svc.remove_item(1, product.id)

        assert cart.items == []
        assert cart.version == version
