"""Application state store: cart, orders and loyalty with durable mirroring."""

import asyncio
import copy
import logging
import math
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TypeVar

from code_cup.domain.cart import CartItem
from code_cup.domain.drinks import (
    DEFAULT_ICE,
    DEFAULT_SIZE,
    DEFAULT_SWEETNESS,
    FREE_DRINK_ICE,
    FREE_DRINK_SIZE,
    FREE_DRINK_SWEETNESS,
    RECORD_ERRORS,
    Coffee,
    DrinkOption,
    compute_price,
)
from code_cup.domain.loyalty import (
    EARNED,
    FREE_DRINK_POINT_COST,
    POINTS_PER_DOLLAR,
    REDEEMED,
    REWARD,
    PointEntry,
    advance_stamps,
)
from code_cup.domain.orders import CANCELLED, COMPLETED, IN_PROCESS, Order
from code_cup.domain.profile import DEFAULT_PREFERENCES, DEFAULT_PROFILE
from code_cup.services.persistence import (
    CART_ITEMS,
    CURRENT_ORDERS,
    FAVORITES,
    ORDER_HISTORY,
    POINT_HISTORY,
    POINTS,
    STAMPS,
    USER_PREFERENCES,
    USER_PROFILE,
    PersistenceService,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class AppState:
    """Live in-memory state of the app."""

    user_profile: dict[str, object] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PROFILE)
    )
    cart_items: list[CartItem] = field(default_factory=list)
    favorites: list[Coffee] = field(default_factory=list)
    stamps: int = 0
    points: int = 0
    point_history: list[PointEntry] = field(default_factory=list)
    current_orders: list[Order] = field(default_factory=list)
    order_history: list[Order] = field(default_factory=list)
    preferences: dict[str, object] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PREFERENCES)
    )
    pending_free_drinks: int = 0
    is_selecting_free_drink: bool = False
    is_loading: bool = False
    is_initialized: bool = False

    def to_snapshot(self) -> dict[str, object]:
        """Return the persistable slices as catalog records."""
        return {
            USER_PROFILE: copy.deepcopy(self.user_profile),
            CART_ITEMS: [item.to_record() for item in self.cart_items],
            FAVORITES: [coffee.to_record() for coffee in self.favorites],
            STAMPS: self.stamps,
            POINTS: self.points,
            POINT_HISTORY: [entry.to_record() for entry in self.point_history],
            CURRENT_ORDERS: [order.to_record() for order in self.current_orders],
            ORDER_HISTORY: [order.to_record() for order in self.order_history],
            USER_PREFERENCES: copy.deepcopy(self.preferences),
        }

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, object]) -> "AppState":
        """Build state from loaded catalog records.

        Unreadable records are skipped so one bad entry cannot discard the
        rest of the stored state.
        """
        profile = snapshot.get(USER_PROFILE)
        preferences = snapshot.get(USER_PREFERENCES)
        return cls(
            user_profile=dict(profile)
            if isinstance(profile, dict)
            else copy.deepcopy(DEFAULT_PROFILE),
            cart_items=_parse_records(snapshot, CART_ITEMS, CartItem.from_record),
            favorites=_parse_records(snapshot, FAVORITES, Coffee.from_record),
            stamps=_non_negative_int(snapshot.get(STAMPS)),
            points=_non_negative_int(snapshot.get(POINTS)),
            point_history=_parse_records(
                snapshot, POINT_HISTORY, PointEntry.from_record
            ),
            current_orders=_parse_records(snapshot, CURRENT_ORDERS, Order.from_record),
            order_history=_parse_records(snapshot, ORDER_HISTORY, Order.from_record),
            preferences=dict(preferences)
            if isinstance(preferences, dict)
            else copy.deepcopy(DEFAULT_PREFERENCES),
        )


@dataclass
class AppStateStore:
    """Owns the authoritative state and mirrors changes into storage.

    Mutations update memory synchronously and then schedule a write task on
    the running event loop, so they must be called from within it. Writes
    are never rolled back on failure; ``flush`` awaits the in-flight ones.
    """

    persistence: PersistenceService
    app_version: str = "1.0.0"
    state: AppState = field(default_factory=AppState)
    _pending: set[asyncio.Task[bool]] = field(default_factory=set, init=False)

    @property
    def pending_writes(self) -> frozenset[asyncio.Task[bool]]:
        """Return the persistence tasks that have not finished yet."""
        return frozenset(self._pending)

    async def flush(self) -> bool:
        """Wait for in-flight writes; True when all of them succeeded."""
        if not self._pending:
            return True
        results = await asyncio.gather(*self._pending, return_exceptions=True)
        return all(result is True for result in results)

    # Cart

    def add_to_cart(
        self,
        coffee: Coffee,
        size: DrinkOption = DEFAULT_SIZE,
        sweetness: DrinkOption = DEFAULT_SWEETNESS,
        ice: DrinkOption = DEFAULT_ICE,
        quantity: int = 1,
    ) -> CartItem:
        """Add a customized drink to the cart."""
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        item = CartItem(
            id=_new_id(item.id for item in self.state.cart_items),
            coffee=coffee,
            size=size,
            sweetness=sweetness,
            ice=ice,
            quantity=quantity,
            total_price=compute_price(coffee, size, quantity),
        )
        self.state.cart_items = [*self.state.cart_items, item]
        self._persist(CART_ITEMS)
        return item

    def remove_from_cart(self, item_id: str) -> bool:
        """Remove a cart line by id."""
        remaining = [item for item in self.state.cart_items if item.id != item_id]
        if len(remaining) == len(self.state.cart_items):
            return False
        self.state.cart_items = remaining
        self._persist(CART_ITEMS)
        return True

    def clear_cart(self) -> None:
        """Empty the cart."""
        self.state.cart_items = []
        self._persist(CART_ITEMS)

    def cart_total(self) -> float:
        """Return the amount due for the cart."""
        return round(sum(item.total_price for item in self.state.cart_items), 2)

    # Profile, preferences and favorites

    def update_profile(self, field_name: str, value: object) -> None:
        """Set one profile field."""
        self.state.user_profile = {**self.state.user_profile, field_name: value}
        self._persist(USER_PROFILE)

    def update_preferences(self, **changes: object) -> None:
        """Merge preference changes."""
        self.state.preferences = {**self.state.preferences, **changes}
        self._persist(USER_PREFERENCES)

    def toggle_favorite(self, coffee: Coffee) -> bool:
        """Add or remove a favorite; return True when it is now a favorite."""
        if self.is_favorite(coffee.id):
            self.state.favorites = [
                c for c in self.state.favorites if c.id != coffee.id
            ]
            is_favorite = False
        else:
            self.state.favorites = [*self.state.favorites, coffee]
            is_favorite = True
        self._persist(FAVORITES)
        return is_favorite

    def is_favorite(self, coffee_id: str) -> bool:
        """Return True when the coffee is a favorite."""
        return any(coffee.id == coffee_id for coffee in self.state.favorites)

    # Orders

    def place_order(self, items: list[CartItem] | None = None) -> Order | None:
        """Create an in-process order from the cart and empty the cart.

        Rewards are computed from paid items now but credited on completion.
        """
        ordered = list(self.state.cart_items if items is None else items)
        if not ordered:
            return None
        paid = [item for item in ordered if not item.is_free]
        total_amount = round(sum(item.total_price for item in paid), 2)
        order = Order(
            id=_new_id(order.id for order in self._all_orders()),
            items=ordered,
            total_amount=total_amount,
            points_earned=math.floor(round(total_amount * POINTS_PER_DOLLAR, 6)),
            total_cups=sum(item.quantity for item in paid),
            status=IN_PROCESS,
            order_date=_now_iso(),
            free_items=len(ordered) - len(paid),
        )
        self.state.current_orders = [*self.state.current_orders, order]
        self.state.cart_items = []
        self._persist(CURRENT_ORDERS, CART_ITEMS)
        return order

    def complete_order(self, order_id: str) -> Order | None:
        """Complete an in-process order and credit its rewards once."""
        order = self._take_current_order(order_id)
        if order is None:
            return None
        completed = replace(order, status=COMPLETED, completed_date=_now_iso())
        self.state.order_history = [*self.state.order_history, completed]

        stamp_result = advance_stamps(self.state.stamps, order.total_cups)
        self.state.stamps = stamp_result.stamps
        self.state.points += order.points_earned
        if order.points_earned > 0:
            self._append_ledger(
                f"Order #{order.id[-4:]} completed", order.points_earned, EARNED
            )
        if stamp_result.earned_free_drink:
            self.state.pending_free_drinks += 1
            self._append_ledger("Free drink earned with 8 stamps", 0, REWARD)

        self._persist(CURRENT_ORDERS, ORDER_HISTORY, STAMPS, POINTS, POINT_HISTORY)
        return completed

    def cancel_order(self, order_id: str) -> Order | None:
        """Cancel an in-process order without crediting anything."""
        order = self._take_current_order(order_id)
        if order is None:
            return None
        cancelled = replace(order, status=CANCELLED, cancelled_date=_now_iso())
        self.state.order_history = [*self.state.order_history, cancelled]
        self._persist(CURRENT_ORDERS, ORDER_HISTORY)
        return cancelled

    # Loyalty

    def add_stamp(self) -> bool:
        """Add one stamp; return True when it completed a card."""
        stamp_result = advance_stamps(self.state.stamps, 1)
        self.state.stamps = stamp_result.stamps
        if not stamp_result.earned_free_drink:
            self._persist(STAMPS)
            return False
        self.state.pending_free_drinks += 1
        self._append_ledger("Free drink earned with 8 stamps", 0, REWARD)
        self._persist(STAMPS, POINT_HISTORY)
        return True

    def add_points(self, amount: int, description: str) -> None:
        """Credit points with a ledger entry."""
        self.state.points += amount
        self._append_ledger(description, amount, EARNED)
        self._persist(POINTS, POINT_HISTORY)

    def redeem_points(self, amount: int, description: str) -> None:
        """Debit points, never below zero, with a ledger entry."""
        self.state.points = max(0, self.state.points - amount)
        self._append_ledger(description, -amount, REDEEMED)
        self._persist(POINTS, POINT_HISTORY)

    def redeem_points_for_free_drink(self) -> bool:
        """Trade points for a free drink and start selecting it."""
        if self.state.points < FREE_DRINK_POINT_COST:
            return False
        self.state.points -= FREE_DRINK_POINT_COST
        self.state.pending_free_drinks += 1
        self._append_ledger(
            "Redeemed for a free drink", -FREE_DRINK_POINT_COST, REDEEMED
        )
        self.state.is_selecting_free_drink = True
        self._persist(POINTS, POINT_HISTORY)
        return True

    def start_free_drink_selection(self) -> bool:
        """Enter free-drink selection when a free drink is pending."""
        if self.state.pending_free_drinks <= 0:
            return False
        self.state.is_selecting_free_drink = True
        return True

    def cancel_free_drink_selection(self) -> None:
        """Leave free-drink selection without using a credit."""
        self.state.is_selecting_free_drink = False

    def add_free_drink_to_cart(self, coffee: Coffee) -> CartItem | None:
        """Spend one pending free drink on a small, zero-priced coffee."""
        state = self.state
        if not state.is_selecting_free_drink or state.pending_free_drinks <= 0:
            return None
        item = CartItem(
            id=_new_id(item.id for item in self.state.cart_items),
            coffee=coffee,
            size=FREE_DRINK_SIZE,
            sweetness=FREE_DRINK_SWEETNESS,
            ice=FREE_DRINK_ICE,
            quantity=1,
            total_price=0.0,
            is_free=True,
        )
        self.state.cart_items = [*self.state.cart_items, item]
        self.state.pending_free_drinks -= 1
        self.state.is_selecting_free_drink = False
        self._persist(CART_ITEMS)
        return item

    # Lifecycle

    async def initialize_app(self) -> None:
        """Seed, migrate and load stored state; always ends initialized."""
        self.state.is_loading = True
        try:
            outcomes = await asyncio.gather(
                self.persistence.seed_if_first_run(self.app_version),
                self.persistence.migrate(self.app_version),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    _logger.error("Startup storage step failed: %s", outcome)
            loaded = await self.persistence.load_all()
            if loaded is not None:
                self._apply_loaded(loaded)
        except Exception:
            _logger.exception("App initialization failed, using default state")
        finally:
            self.state.is_loading = False
            self.state.is_initialized = True

    async def save_app_state(self) -> bool:
        """Save every slice; True when at least one slice was saved."""
        result = await self.persistence.save_batch(self.state.to_snapshot())
        return result.partial_success

    async def clear_all_data(self) -> None:
        """Wipe storage and reset memory to defaults, including initialization."""
        await self.flush()
        await self.persistence.wipe_all()
        self.state = AppState()
        _logger.info("All app data cleared")

    async def export_user_data(self) -> str | None:
        """Return a JSON backup of the stored state."""
        await self.flush()
        return await self.persistence.export_snapshot()

    async def import_user_data(self, text: str) -> bool:
        """Restore a JSON backup into storage and reload memory from it."""
        await self.flush()
        saved = await self.persistence.import_snapshot(text)
        if saved:
            loaded = await self.persistence.load_all()
            if loaded is not None:
                self._apply_loaded(loaded)
        return saved

    def data_summary(self) -> dict[str, object]:
        """Return headline numbers about the stored user data."""
        return {
            "userName": self.state.user_profile.get("name"),
            "totalOrders": len(self.state.order_history),
            "currentOrders": len(self.state.current_orders),
            "totalPoints": self.state.points,
            "stamps": self.state.stamps,
            "pendingFreeDrinks": self.state.pending_free_drinks,
        }

    def _apply_loaded(self, loaded: Mapping[str, object]) -> None:
        fresh = AppState.from_snapshot(loaded)
        fresh.pending_free_drinks = self.state.pending_free_drinks
        fresh.is_selecting_free_drink = self.state.is_selecting_free_drink
        fresh.is_loading = self.state.is_loading
        fresh.is_initialized = self.state.is_initialized
        self.state = fresh

    def _take_current_order(self, order_id: str) -> Order | None:
        for order in self.state.current_orders:
            if order.id == order_id:
                self.state.current_orders = [
                    o for o in self.state.current_orders if o.id != order_id
                ]
                return order
        return None

    def _all_orders(self) -> list[Order]:
        return [*self.state.current_orders, *self.state.order_history]

    def _append_ledger(self, description: str, points: int, entry_type: str) -> None:
        entry = PointEntry(
            id=_new_id(entry.id for entry in self.state.point_history),
            date=_now_iso(),
            description=description,
            points=points,
            type=entry_type,
        )
        self.state.point_history = [*self.state.point_history, entry]

    def _persist(self, *names: str) -> "asyncio.Task[bool]":
        snapshot = self.state.to_snapshot()
        values = {name: snapshot[name] for name in names}
        task = asyncio.get_running_loop().create_task(self._write(values))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, values: dict[str, object]) -> bool:
        ok = True
        for name, value in values.items():
            try:
                saved = await self.persistence.save(name, value)
            except Exception:
                _logger.exception("Failed to persist %s", name)
                saved = False
            if not saved:
                _logger.warning("Could not persist %s", name)
                ok = False
        return ok


def _new_id(taken: Iterable[str]) -> str:
    """Return a millisecond timestamp id not present in ``taken``."""
    used = set(taken)
    candidate = int(time.time() * 1000)
    while str(candidate) in used:
        candidate += 1
    return str(candidate)


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


def _records(value: object) -> list[dict[str, object]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _parse_records(
    snapshot: Mapping[str, object],
    name: str,
    parser: Callable[[dict[str, object]], T],
) -> list[T]:
    parsed: list[T] = []
    for record in _records(snapshot.get(name)):
        try:
            parsed.append(parser(record))
        except RECORD_ERRORS as exc:
            _logger.warning("Skipping unreadable %s record: %r", name, exc)
    return parsed


def _non_negative_int(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return max(0, int(value))
