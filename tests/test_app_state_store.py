"""Tests for the application state store."""

import asyncio

import pytest

from code_cup.domain.drinks import LARGE, MEDIUM, SMALL, Coffee
from code_cup.domain.profile import DEFAULT_PREFERENCES, DEFAULT_PROFILE
from code_cup.services.app_state import AppState, AppStateStore
from code_cup.services.persistence import InvalidSnapshotError, PersistenceService
from code_cup.services.storage import StorageAdapter
from tests.conftest import ESPRESSO, LATTE, InMemoryStorageBackend, ScriptedStorage


def test_add_to_cart_prices_and_persists(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    async def scenario() -> None:
        store.add_to_cart(LATTE, size=MEDIUM, quantity=2)
        store.add_to_cart(ESPRESSO, size=LARGE)
        await store.flush()

    asyncio.run(scenario())

    assert [item.total_price for item in store.state.cart_items] == [9.1, 8.0]
    assert store.cart_total() == 17.1
    stored = scripted_storage.values["@CodeCup:cartItems"]
    assert len(stored) == 2
    assert stored[0]["coffeeId"] == "2"
    assert stored[0]["size"]["id"] == "medium"


def test_add_to_cart_rejects_non_positive_quantity(store: AppStateStore) -> None:
    async def scenario() -> None:
        store.add_to_cart(LATTE, quantity=0)

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_cart_ids_are_unique(store: AppStateStore) -> None:
    async def scenario() -> None:
        for _ in range(5):
            store.add_to_cart(LATTE)
        await store.flush()

    asyncio.run(scenario())

    ids = [item.id for item in store.state.cart_items]
    assert len(set(ids)) == 5


def test_remove_and_clear_cart(store: AppStateStore) -> None:
    async def scenario() -> tuple[bool, bool]:
        item = store.add_to_cart(LATTE)
        store.add_to_cart(ESPRESSO)
        removed = store.remove_from_cart(item.id)
        missing = store.remove_from_cart("does-not-exist")
        store.clear_cart()
        await store.flush()
        return removed, missing

    assert asyncio.run(scenario()) == (True, False)
    assert store.state.cart_items == []


def test_completing_order_credits_rewards_once(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    store.state.stamps = 7

    async def scenario() -> None:
        store.add_to_cart(ESPRESSO, size=SMALL)
        order = store.place_order()
        assert order is not None
        assert store.state.stamps == 7
        assert store.state.points == 0
        store.complete_order(order.id)
        assert store.complete_order(order.id) is None
        await store.flush()

    asyncio.run(scenario())

    state = store.state
    assert state.stamps == 0
    assert state.pending_free_drinks == 1
    assert state.points == 25
    assert [(entry.type, entry.points) for entry in state.point_history] == [
        ("earned", 25),
        ("reward", 0),
    ]
    assert state.current_orders == []
    assert state.order_history[0].status == "completed"
    assert state.order_history[0].completed_date is not None
    assert scripted_storage.values["@CodeCup:points"] == 25
    assert scripted_storage.values["@CodeCup:stamps"] == 0


def test_place_order_with_empty_cart_returns_none(store: AppStateStore) -> None:
    assert store.place_order() is None
    assert store.state.current_orders == []


def test_place_order_clears_cart(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    async def scenario() -> None:
        store.add_to_cart(LATTE, quantity=3)
        store.place_order()
        await store.flush()

    asyncio.run(scenario())

    order = store.state.current_orders[0]
    assert order.status == "in-process"
    assert order.total_cups == 3
    assert order.points_earned == 52
    assert order.estimated_time == "15-20 mins"
    assert store.state.cart_items == []
    assert scripted_storage.values["@CodeCup:cartItems"] == []
    assert len(scripted_storage.values["@CodeCup:currentOrders"]) == 1


def test_cancel_order_changes_no_rewards(store: AppStateStore) -> None:
    async def scenario() -> None:
        store.add_to_cart(ESPRESSO, quantity=2)
        order = store.place_order()
        cancelled = store.cancel_order(order.id)
        assert cancelled is not None
        assert cancelled.status == "cancelled"
        assert store.complete_order(order.id) is None
        await store.flush()

    asyncio.run(scenario())

    assert store.state.stamps == 0
    assert store.state.points == 0
    assert store.state.point_history == []
    assert store.state.order_history[0].cancelled_date is not None


def test_free_items_earn_nothing(store: AppStateStore) -> None:
    store.state.pending_free_drinks = 1

    async def scenario() -> None:
        assert store.start_free_drink_selection() is True
        store.add_free_drink_to_cart(LATTE)
        order = store.place_order()
        assert order.total_amount == 0
        assert order.points_earned == 0
        assert order.total_cups == 0
        assert order.free_items == 1
        store.complete_order(order.id)
        await store.flush()

    asyncio.run(scenario())

    assert store.state.stamps == 0
    assert store.state.points == 0
    assert store.state.point_history == []


def test_add_free_drink_requires_selection_and_credit(store: AppStateStore) -> None:
    async def scenario() -> None:
        assert store.start_free_drink_selection() is False
        assert store.add_free_drink_to_cart(LATTE) is None

        store.state.pending_free_drinks = 1
        store.start_free_drink_selection()
        item = store.add_free_drink_to_cart(LATTE)
        assert item is not None
        assert item.is_free is True
        assert item.total_price == 0
        assert item.size.id == "small"
        assert item.sweetness.id == "regular"
        assert item.ice.id == "regular"
        assert store.add_free_drink_to_cart(LATTE) is None
        await store.flush()

    asyncio.run(scenario())

    assert store.state.pending_free_drinks == 0
    assert store.state.is_selecting_free_drink is False


def test_cancel_free_drink_selection_keeps_credit(store: AppStateStore) -> None:
    store.state.pending_free_drinks = 1
    store.start_free_drink_selection()
    store.cancel_free_drink_selection()

    assert store.state.is_selecting_free_drink is False
    assert store.state.pending_free_drinks == 1


def test_add_stamp_wraps_at_full_card(store: AppStateStore) -> None:
    store.state.stamps = 6

    async def scenario() -> tuple[bool, bool]:
        first = store.add_stamp()
        second = store.add_stamp()
        await store.flush()
        return first, second

    assert asyncio.run(scenario()) == (False, True)
    assert store.state.stamps == 0
    assert store.state.pending_free_drinks == 1
    assert store.state.point_history[-1].type == "reward"


def test_redeem_points_floors_at_zero(store: AppStateStore) -> None:
    async def scenario() -> None:
        store.add_points(30, "Promo")
        store.redeem_points(50, "Merch")
        await store.flush()

    asyncio.run(scenario())

    assert store.state.points == 0
    assert [entry.points for entry in store.state.point_history] == [30, -50]


def test_redeem_points_for_free_drink(store: AppStateStore) -> None:
    store.state.points = 120

    async def scenario() -> tuple[bool, bool]:
        first = store.redeem_points_for_free_drink()
        second = store.redeem_points_for_free_drink()
        await store.flush()
        return first, second

    assert asyncio.run(scenario()) == (True, False)
    assert store.state.points == 20
    assert store.state.pending_free_drinks == 1
    assert store.state.is_selecting_free_drink is True
    assert store.state.point_history[-1].description == "Redeemed for a free drink"
    assert store.state.point_history[-1].points == -100


def test_toggle_favorite(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    async def scenario() -> tuple[bool, bool]:
        added = store.toggle_favorite(LATTE)
        assert store.is_favorite(LATTE.id)
        removed = store.toggle_favorite(LATTE)
        await store.flush()
        return added, removed

    assert asyncio.run(scenario()) == (True, False)
    assert scripted_storage.values["@CodeCup:favorites"] == []


def test_profile_and_preferences_updates(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    async def scenario() -> None:
        store.update_profile("name", "Ada")
        store.update_preferences(darkMode=True)
        await store.flush()

    asyncio.run(scenario())

    assert scripted_storage.values["@CodeCup:userProfile"]["name"] == "Ada"
    assert scripted_storage.values["@CodeCup:userPreferences"]["darkMode"] is True


def test_memory_survives_failed_writes(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    scripted_storage.failing_keys = {"@CodeCup:cartItems"}

    async def scenario() -> bool:
        store.add_to_cart(LATTE)
        return await store.flush()

    assert asyncio.run(scenario()) is False
    assert len(store.state.cart_items) == 1


def test_initialize_app_seeds_first_run(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    asyncio.run(store.initialize_app())

    assert store.state.is_initialized is True
    assert store.state.is_loading is False
    assert store.state.points == 100
    assert store.state.point_history[0].description == "Welcome bonus!"
    assert store.state.user_profile == DEFAULT_PROFILE
    assert scripted_storage.values["@CodeCup:lastAppVersion"] == "1.0.0"


def test_initialize_app_loads_stored_state(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    scripted_storage.values.update(
        {
            "@CodeCup:appInitialized": True,
            "@CodeCup:lastAppVersion": "1.0.0",
            "@CodeCup:stamps": 4,
            "@CodeCup:points": 55,
            "@CodeCup:favorites": [{"id": "2", "name": "Latte", "price": 3.5}],
        }
    )

    asyncio.run(store.initialize_app())

    assert store.state.stamps == 4
    assert store.state.points == 55
    assert store.state.favorites == [Coffee(id="2", name="Latte", price=3.5)]


def test_initialize_app_skips_unreadable_records(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    scripted_storage.values.update(
        {
            "@CodeCup:appInitialized": True,
            "@CodeCup:lastAppVersion": "1.0.0",
            "@CodeCup:userProfile": {"name": "A"},
            "@CodeCup:points": 500,
            "@CodeCup:cartItems": [
                {"name": "Latte", "price": 4.75},
                {"id": "7", "coffeeId": "2", "name": "Latte", "price": 3.5},
            ],
            "@CodeCup:currentOrders": [{"id": "9", "items": "latte"}],
            "@CodeCup:orderHistory": [
                {"id": "8", "totalCups": "many"},
                {"id": "10", "totalCups": 2, "status": "completed"},
            ],
            "@CodeCup:pointHistory": [{"id": "1", "points": "lots"}],
        }
    )

    async def scenario() -> None:
        await store.initialize_app()
        await store.save_app_state()

    asyncio.run(scenario())

    assert store.state.points == 500
    assert store.state.user_profile == {"name": "A"}
    assert [item.id for item in store.state.cart_items] == ["7"]
    assert store.state.current_orders == []
    assert [order.id for order in store.state.order_history] == ["10"]
    assert store.state.point_history == []
    assert scripted_storage.values["@CodeCup:points"] == 500
    assert scripted_storage.values["@CodeCup:userProfile"] == {"name": "A"}


def test_import_user_data_rejects_unreadable_records_before_writing(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    text = (
        '{"userProfile": {"name": "A"}, "exportDate": "2024-01-01T00:00:00Z",'
        ' "points": 500, "cartItems": [{"name": "Latte", "price": 4.75}]}'
    )

    with pytest.raises(InvalidSnapshotError):
        asyncio.run(store.import_user_data(text))

    assert scripted_storage.values == {}
    asyncio.run(store.initialize_app())
    assert store.state.points == 100


def test_initialize_app_completes_when_storage_raises(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    scripted_storage.raising_keys = {"@CodeCup:appInitialized", "@CodeCup:points"}

    asyncio.run(store.initialize_app())

    assert store.state.is_initialized is True
    assert store.state.is_loading is False
    assert store.state.points == 0


def test_probe_failure_keeps_app_working_in_memory() -> None:
    adapter = StorageAdapter(
        backend=InMemoryStorageBackend(fail=True),
        probe_attempts=2,
        probe_retry_delay_seconds=0.0,
    )
    store = AppStateStore(persistence=PersistenceService(storage=adapter))

    async def scenario() -> None:
        await store.initialize_app()
        store.add_to_cart(LATTE)
        store.state.stamps = 3
        assert await store.flush() is True
        assert await store.save_app_state() is True
        assert await adapter.get("@CodeCup:stamps") == 3
        await store.clear_all_data()

    asyncio.run(scenario())

    assert store.state == AppState()
    assert store.state.user_profile == DEFAULT_PROFILE
    assert store.state.preferences == DEFAULT_PREFERENCES
    assert store.state.is_initialized is False
    assert adapter.status().memory_item_count == 0


def test_save_app_state_reports_partial_success(
    scripted_storage: ScriptedStorage, store: AppStateStore
) -> None:
    scripted_storage.failing_keys = {
        "@CodeCup:userProfile",
        "@CodeCup:cartItems",
        "@CodeCup:stamps",
        "@CodeCup:points",
        "@CodeCup:pointHistory",
        "@CodeCup:currentOrders",
    }

    assert asyncio.run(store.save_app_state()) is True

    scripted_storage.failing_keys.add("@CodeCup:orderHistory")
    assert asyncio.run(store.save_app_state()) is False


def test_import_user_data_reloads_state(store: AppStateStore) -> None:
    async def scenario() -> None:
        store.add_points(70, "Promo")
        await store.save_app_state()
        exported = await store.export_user_data()
        await store.clear_all_data()
        assert store.state.points == 0
        assert await store.import_user_data(exported) is True

    asyncio.run(scenario())

    assert store.state.points == 70
    assert store.data_summary()["totalPoints"] == 70
