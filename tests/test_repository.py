import logging
from datetime import datetime

import pytest

from simpledough import config, repository as repository_module
from simpledough.errors import OrderNotFound
from simpledough.models import LineItem, OrderIn, OrderStatus, ProductRef, UserProfile
from simpledough.repository import OrderRepository
from simpledough.storage import LocalStore

from conftest import FakeRemote, make_order, seed_orders


def _order_in(**kw) -> OrderIn:
    data = dict(
        items=[LineItem(product=ProductRef(id="glazed", name="Glazed", price=45), quantity=4, total_price=180)],
        total=180,
        delivery_method="delivery",
        payment_method="gcash",
        delivery_address="12 Mabini St",
        phone="09171234567",
    )
    data.update(kw)
    return OrderIn(**data)


def test_absent_slot_is_empty(services):
    assert services.repository.list_orders() == []


def test_malformed_slot_is_empty(services):
    (services.store.data_dir / f"{config.ORDERS_SLOT}.json").write_text("{not json")
    assert services.repository.list_orders() == []


def test_non_list_slot_is_empty(services):
    services.store.write(config.ORDERS_SLOT, {"orders": []})
    assert services.repository.list_orders() == []


def test_bad_entries_are_skipped(services):
    good = make_order("1").model_dump(mode="json")
    services.store.write(config.ORDERS_SLOT, [good, {"id": "2"}])
    assert [o.id for o in services.repository.list_orders()] == ["1"]


def test_create_mirrors_remotely(services, remote, customer):
    result = services.repository.create(customer, _order_in())

    assert result.durability == "remote"
    assert result.persisted_remotely
    assert result.order.id == "r1"
    assert result.order.user_id == "u1"
    assert result.order.status.value == "pending"
    assert result.order.delivery_address == "12 Mabini St"
    assert remote.rows[0]["email"] == "ana@example.com"
    assert remote.rows[0]["metadata"]["delivery_method"] == "delivery"
    assert remote.rows[0]["items"][0]["product"]["id"] == "glazed"
    assert [o.id for o in services.repository.list_orders()] == ["r1"]


def test_create_falls_back_to_local(tmp_path, customer, caplog):
    repo = OrderRepository(LocalStore(tmp_path), remote=FakeRemote(fail=True))

    with caplog.at_level(logging.WARNING, logger="simpledough.repository"):
        result = repo.create(customer, _order_in())

    assert result.durability == "local"
    assert not result.persisted_remotely
    assert result.order.id.isdigit()
    assert repo.get(result.order.id).phone == "09171234567"
    assert "falling back" in caplog.text


def test_create_without_remote_is_local(tmp_path, customer):
    repo = OrderRepository(LocalStore(tmp_path))
    assert repo.create(customer, _order_in()).durability == "local"


def test_local_ids_stay_unique_within_one_millisecond(tmp_path, customer, monkeypatch):
    monkeypatch.setattr(repository_module.time, "time", lambda: 1760000000.123)
    repo = OrderRepository(LocalStore(tmp_path))
    other = UserProfile(id="u2", email="ben@example.com", name="Ben")

    first = repo.create(customer, _order_in()).order
    second = repo.create(other, _order_in(total=45)).order

    assert first.id != second.id
    assert len(repo.list_orders()) == 2

    repo.replace(first.model_copy(update={"status": OrderStatus.CONFIRMED}))

    by_user = {o.user_id: o for o in repo.list_orders()}
    assert set(by_user) == {"u1", "u2"}
    assert by_user["u1"].status == OrderStatus.CONFIRMED
    assert by_user["u2"].status == OrderStatus.PENDING


def test_for_user(services):
    seed_orders(services, [make_order("1", user_id="u1"), make_order("2", user_id="u2")])
    assert [o.id for o in services.repository.for_user("u2")] == ["2"]


def test_replace_unknown_raises(services):
    seed_orders(services, [make_order("1")])
    with pytest.raises(OrderNotFound):
        services.repository.replace(make_order("2"))


def test_subscribe_and_unsubscribe(services, customer):
    seen = []
    unsubscribe = services.repository.subscribe(lambda orders: seen.append(len(orders)))

    services.repository.create(customer, _order_in())
    unsubscribe()
    services.repository.create(customer, _order_in())

    assert seen == [1]


def test_naive_timestamps_are_local(services):
    raw = make_order("1").model_dump(mode="json")
    raw["created_at"] = "2026-10-19T08:00:00"
    services.store.write(config.ORDERS_SLOT, [raw])

    order = services.repository.get("1")
    assert order.created_at.tzinfo is not None
    assert order.created_at.replace(tzinfo=None) == datetime(2026, 10, 19, 8)