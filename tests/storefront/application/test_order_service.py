"""Tests for OrderService: order creation, compensation and status updates."""

import asyncio

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.config import StorefrontSettings
from storefront.exceptions import PersistenceError, StateError
from storefront.order.events import OrderPlaced, OrderStatusChanged
from storefront.order.order import OrderStatus
from storefront.order.records import ORDER_ITEMS, ORDERS, PAYMENT_TRANSACTIONS
from storefront.order.service import OrderService

ADDRESS = "12 Harbour Road, Flat 3"
GOOD_CARD = "4242 4242 4242 4242"
DECLINED_CARD = "5555 5555 5555 4444"


@pytest.fixture
def events():
    return []


@pytest.fixture
def service(adapter, settings, events):
    service = OrderService(adapter, settings, notify=events.append)
    yield service
    service.close()


@pytest.fixture
def snapshot(cart_store, spring_water, sparkling_water):
    cart_store.add_item(spring_water, 2)
    cart_store.add_item(sparkling_water, 1)
    return cart_store.snapshot()


async def _create(service, snapshot, payment_method="card", card_number=GOOD_CARD, **overrides):
    data = {
        "customer_id": "cust-001",
        "customer_name": "Ada Lovelace",
        "items": snapshot.items,
        "summary": snapshot.summary,
        "delivery_address": ADDRESS,
        "payment_method": payment_method,
        "card_number": card_number,
    }
    data.update(overrides)
    return await service.create_order(**data)


def _remote_row(remote, collection, **filter):
    return next(row for row in remote.collections[collection] if all(row.get(k) == v for k, v in filter.items()))


class TestValidation:
    @pytest.mark.asyncio
    async def test_empty_cart_is_rejected_before_any_write(self, service, remote, cart_store):
        with pytest.raises(ValidationError) as exc_info:
            await _create(service, cart_store.snapshot())

        assert "items" in exc_info.value.messages
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_blank_address_is_rejected(self, service, remote, snapshot):
        with pytest.raises(ValidationError) as exc_info:
            await _create(service, snapshot, delivery_address="   ")

        assert "delivery_address" in exc_info.value.messages
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_unknown_payment_method(self, service, snapshot):
        with pytest.raises(ValidationError) as exc_info:
            await _create(service, snapshot, payment_method="cheque")

        assert "payment_method" in exc_info.value.messages

    @pytest.mark.asyncio
    async def test_card_payment_needs_card_number(self, service, snapshot):
        with pytest.raises(ValidationError) as exc_info:
            await _create(service, snapshot, card_number="")

        assert "card_number" in exc_info.value.messages


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_accepted_card_starts_processing(self, service, remote, snapshot):
        order = await _create(service, snapshot)

        assert order.current_status is OrderStatus.PROCESSING
        assert order.summary.total == snapshot.summary.total
        assert len(order.items) == 2

        order_id = str(order.id)
        assert _remote_row(remote, ORDERS, id=order_id)["status"] == "processing"
        assert len([r for r in remote.collections[ORDER_ITEMS] if r["order_id"] == order_id]) == 2
        payment = _remote_row(remote, PAYMENT_TRANSACTIONS, order_id=order_id)
        assert payment["status"] == "completed"
        assert payment["transaction_data"]["card_last4"] == "4242"

    @pytest.mark.asyncio
    async def test_other_card_is_recorded_as_payment_failed(self, service, remote, snapshot):
        order = await _create(service, snapshot, card_number=DECLINED_CARD)

        assert order.current_status is OrderStatus.PAYMENT_FAILED
        payment = _remote_row(remote, PAYMENT_TRANSACTIONS, order_id=str(order.id))
        assert payment["status"] == "failed"
        assert str(order.id) not in service.watchdog

    @pytest.mark.asyncio
    async def test_cash_order_is_pending_and_watched(self, service, snapshot):
        order = await _create(service, snapshot, payment_method="cash", card_number=None)

        assert order.current_status is OrderStatus.PENDING
        assert str(order.id) in service.watchdog

    @pytest.mark.asyncio
    async def test_order_placed_is_published(self, service, events, snapshot):
        order = await _create(service, snapshot)

        placed = [e for e in events if isinstance(e, OrderPlaced)]
        assert len(placed) == 1
        assert placed[0].order_id == str(order.id)

    @pytest.mark.asyncio
    async def test_remote_outage_keeps_order_locally(self, service, remote, adapter, snapshot):
        remote.configure(should_succeed=False)

        order = await _create(service, snapshot)

        assert order.current_status is OrderStatus.PROCESSING
        assert str(order.id) in service.unsynced_order_ids
        assert str(order.id) in adapter.pending_ids(ORDERS)
        assert remote.collections[ORDERS] == []


class TestCompensation:
    @pytest.mark.asyncio
    async def test_items_landing_elsewhere_cancels_order(self, service, remote, snapshot, events):
        remote.configure(failing_collections={ORDER_ITEMS})

        with pytest.raises(PersistenceError):
            await _create(service, snapshot)

        row = remote.collections[ORDERS][0]
        assert row["status"] == "cancelled"
        order = service.get_order(row["id"])
        assert order.current_status is OrderStatus.CANCELLED
        assert remote.collections[PAYMENT_TRANSACTIONS] == []
        assert any(isinstance(e, OrderStatusChanged) and e.new_status == "cancelled" for e in events)

    @pytest.mark.asyncio
    async def test_payment_record_failure_marks_payment_failed(self, service, remote, snapshot):
        remote.configure(failing_collections={PAYMENT_TRANSACTIONS})

        with pytest.raises(PersistenceError):
            await _create(service, snapshot, payment_method="cash", card_number=None)

        row = remote.collections[ORDERS][0]
        assert row["status"] == "payment_failed"
        assert row["id"] not in service.watchdog

    @pytest.mark.asyncio
    async def test_already_failed_payment_is_not_transitioned_again(self, service, remote, snapshot):
        remote.configure(failing_collections={PAYMENT_TRANSACTIONS})

        with pytest.raises(PersistenceError):
            await _create(service, snapshot, card_number=DECLINED_CARD)

        row = remote.collections[ORDERS][0]
        assert row["status"] == "payment_failed"


class TestStatusUpdates:
    @pytest.mark.asyncio
    async def test_valid_transition_is_persisted(self, service, remote, snapshot):
        order = await _create(service, snapshot)

        updated = await service.update_order_status(order.id, "delivering")

        assert updated.current_status is OrderStatus.DELIVERING
        assert _remote_row(remote, ORDERS, id=str(order.id))["status"] == "delivering"

    @pytest.mark.asyncio
    async def test_terminal_order_cannot_move(self, service, snapshot):
        order = await _create(service, snapshot)
        await service.update_order_status(order.id, "delivering")
        await service.update_order_status(order.id, "completed")

        with pytest.raises(StateError):
            await service.update_order_status(order.id, "cancelled")

    @pytest.mark.asyncio
    async def test_processing_cannot_go_back_to_pending(self, service, snapshot):
        order = await _create(service, snapshot)

        with pytest.raises(StateError):
            await service.update_order_status(order.id, "pending")

    @pytest.mark.asyncio
    async def test_unknown_order(self, service):
        with pytest.raises(ObjectNotFoundError):
            await service.update_order_status("missing", "completed")

    @pytest.mark.asyncio
    async def test_unknown_status(self, service, snapshot):
        order = await _create(service, snapshot)

        with pytest.raises(ValidationError):
            await service.update_order_status(order.id, "shipped")

    @pytest.mark.asyncio
    async def test_leaving_pending_stops_watchdog(self, service, snapshot):
        order = await _create(service, snapshot, payment_method="cash", card_number=None)

        await service.update_order_status(order.id, "delivering")

        assert str(order.id) not in service.watchdog

    @pytest.mark.asyncio
    async def test_update_during_outage_is_tracked(self, service, remote, snapshot):
        order = await _create(service, snapshot)
        remote.configure(should_succeed=False)

        await service.update_order_status(order.id, "delivering")

        assert str(order.id) in service.unsynced_order_ids


class TestAutoCompletion:
    @pytest.fixture
    def fast_service(self, adapter):
        service = OrderService(adapter, StorefrontSettings(auto_complete_after=0.05))
        yield service
        service.close()

    @pytest.mark.asyncio
    async def test_pending_order_completes(self, fast_service, remote, snapshot):
        order = await _create(fast_service, snapshot, payment_method="cash", card_number=None)

        await asyncio.sleep(0.2)

        assert order.current_status is OrderStatus.COMPLETED
        assert _remote_row(remote, ORDERS, id=str(order.id))["status"] == "completed"

    @pytest.mark.asyncio
    async def test_cancelled_order_is_left_alone(self, fast_service, snapshot):
        order = await _create(fast_service, snapshot, payment_method="cash", card_number=None)
        await fast_service.update_order_status(order.id, "cancelled")

        await asyncio.sleep(0.2)

        assert order.current_status is OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_card_order_is_never_auto_completed(self, fast_service, snapshot):
        order = await _create(fast_service, snapshot)

        await asyncio.sleep(0.2)

        assert order.current_status is OrderStatus.PROCESSING


class TestQueries:
    @pytest.mark.asyncio
    async def test_load_orders_newest_first(self, adapter, settings, remote, snapshot):
        first = OrderService(adapter, settings)
        older = await _create(first, snapshot)
        newer = await _create(first, snapshot, payment_method="cash", card_number=None)
        first.close()

        fresh = OrderService(adapter, settings)
        loaded = await fresh.load_orders("cust-001")

        assert [str(o.id) for o in loaded] == [str(newer.id), str(older.id)]
        assert len(loaded[1].items) == 2
        assert str(newer.id) in fresh.watchdog
        fresh.close()

    @pytest.mark.asyncio
    async def test_load_merges_locally_held_orders(self, service, adapter, settings, remote, snapshot):
        remote.configure(should_succeed=False)
        offline = await _create(service, snapshot)
        remote.configure(should_succeed=True)
        online = await _create(service, snapshot)

        fresh = OrderService(adapter, settings)
        loaded = await fresh.load_orders("cust-001")

        assert {str(o.id) for o in loaded} == {str(offline.id), str(online.id)}
        fresh.close()

    @pytest.mark.asyncio
    async def test_orders_by_vendor(self, service, cart_store, sparkling_water, snapshot):
        with_spring = await _create(service, snapshot)
        cart_store.clear_cart()
        cart_store.add_item(sparkling_water)
        sparkling_only = await _create(service, cart_store.snapshot())

        assert [str(o.id) for o in service.get_orders_by_vendor("vendor-blue")] == [str(with_spring.id)]
        assert {str(o.id) for o in service.get_orders_by_vendor("vendor-peak")} == {
            str(with_spring.id),
            str(sparkling_only.id),
        }
        assert service.get_orders_by_vendor("vendor-none") == []

    @pytest.mark.asyncio
    async def test_orders_by_customer(self, service, snapshot):
        order = await _create(service, snapshot)

        assert service.get_orders_by_customer("cust-001") == [order]
        assert service.get_orders_by_customer("cust-002") == []
        assert service.get_order("missing") is None


class TestSync:
    @pytest.mark.asyncio
    async def test_sync_pushes_outage_writes(self, service, remote, snapshot):
        remote.configure(should_succeed=False)
        order = await _create(service, snapshot)
        remote.configure(should_succeed=True)

        synced = await service.sync()

        assert synced[ORDERS] == 1
        assert synced[ORDER_ITEMS] == 2
        assert synced[PAYMENT_TRANSACTIONS] == 1
        assert service.unsynced_order_ids == set()
        assert _remote_row(remote, ORDERS, id=str(order.id))["status"] == "processing"


class TestOutageRecovery:
    @pytest.mark.asyncio
    async def test_status_changed_during_outage_survives_reload(self, adapter, settings, remote, snapshot):
        first = OrderService(adapter, settings)
        order = await _create(first, snapshot, payment_method="cash", card_number=None)
        remote.configure(should_succeed=False)
        await first.update_order_status(order.id, "cancelled")
        first.close()
        remote.configure(should_succeed=True)

        fresh = OrderService(adapter, StorefrontSettings(auto_complete_after=0.05))
        loaded = await fresh.load_orders("cust-001")

        reloaded = loaded[0]
        assert reloaded.current_status is OrderStatus.CANCELLED
        assert str(order.id) not in fresh.watchdog
        assert str(order.id) in fresh.unsynced_order_ids

        await asyncio.sleep(0.2)

        assert reloaded.current_status is OrderStatus.CANCELLED
        assert _remote_row(remote, ORDERS, id=str(order.id))["status"] == "pending"
        fresh.close()

    @pytest.mark.asyncio
    async def test_sync_after_reload_pushes_outage_status(self, adapter, settings, remote, snapshot):
        first = OrderService(adapter, settings)
        order = await _create(first, snapshot)
        remote.configure(should_succeed=False)
        await first.update_order_status(order.id, "delivering")
        first.close()
        remote.configure(should_succeed=True)

        fresh = OrderService(adapter, settings)
        await fresh.load_orders("cust-001")
        await fresh.sync()

        assert _remote_row(remote, ORDERS, id=str(order.id))["status"] == "delivering"
        assert fresh.unsynced_order_ids == set()
        fresh.close()
