"""Tests for the durable key-value store and the cart record."""

import threading

import pytest
from sqlmodel import Session

from storefront.core.session import SessionContext
from storefront.database import create_db_and_tables, make_engine
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.storage_repo import SqlKeyValueStore
from storefront.schemas.cart import CartLineItem
from storefront.services.cart_service import CartService


@pytest.fixture
def sql_store(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    create_db_and_tables(engine)
    yield SqlKeyValueStore(engine)
    engine.dispose()


class TestSqlKeyValueStore:
    def test_set_get_overwrite_delete(self, sql_store):
        assert sql_store.get("cart-items-guest") is None

        sql_store.set("cart-items-guest", "[]")
        sql_store.set("cart-items-guest", '[{"id": 1}]')
        assert sql_store.get("cart-items-guest") == '[{"id": 1}]'

        sql_store.delete("cart-items-guest")
        sql_store.delete("cart-items-guest")
        assert sql_store.get("cart-items-guest") is None

    def test_insert_race_becomes_update(self, sql_store, monkeypatch):
        sql_store.set("cart-items-1", "[]")
        real_get = Session.get
        lookups = []

        def get_missing_once(session, model, key, *args, **kwargs):
            # The first lookup runs before the other writer's row is visible.
            lookups.append(key)
            if len(lookups) == 1:
                return None
            return real_get(session, model, key, *args, **kwargs)

        monkeypatch.setattr(Session, "get", get_missing_once)
        sql_store.set("cart-items-1", '[{"id": 1}]')
        monkeypatch.undo()

        assert len(lookups) == 2
        assert sql_store.get("cart-items-1") == '[{"id": 1}]'

    def test_session_survives_new_store_instance(self, sql_store, customer):
        SessionContext(sql_store).login(customer, "opaque")

        reopened = SqlKeyValueStore(sql_store.engine)
        assert SessionContext(reopened).identity == customer


class TestCartRepository:
    def test_round_trip_per_scope(self, sql_store):
        repo = CartRepository(sql_store)
        lines = [CartLineItem(id=1, product_name="Kale", unit_price=1.0, quantity=3)]

        repo.save("1", lines)

        assert repo.load("1") == lines
        assert repo.load("guest") == []
        assert CartRepository.key_for("1") == "cart-items-1"

    def test_invalid_rows_are_ignored(self, sql_store):
        sql_store.set("cart-items-1", '[{"id": 1, "product_name": "Kale", "unit_price": -4}]')
        assert CartRepository(sql_store).load("1") == []

    def test_shared_cart_under_concurrent_adds(self, sql_store, client):
        service = CartService(SessionContext(sql_store), CartRepository(sql_store), client)
        workers = 20
        barrier = threading.Barrier(workers)

        def add():
            barrier.wait()
            service.add_to_cart({"id": 1, "product_name": "Kale", "unit_price": 1.0})

        threads = [threading.Thread(target=add) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        service.close()

        assert [line.quantity for line in CartRepository(sql_store).load("guest")] == [workers]
