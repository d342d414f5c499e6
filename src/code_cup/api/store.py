"""Store action endpoints: cart, orders, loyalty and profile."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from code_cup.api.admin import require_admin
from code_cup.api.store_models import (
    AddToCartRequest,
    CoffeeRequest,
    PointsRequest,
    PreferencesUpdateRequest,
    ProfileUpdateRequest,
)
from code_cup.domain.drinks import (
    DRINK_SIZES,
    ICE_LEVELS,
    SWEETNESS_LEVELS,
    find_option,
)

if TYPE_CHECKING:
    from code_cup.services.app_state import AppStateStore

router = APIRouter(
    prefix="/store", tags=["store"], dependencies=[Depends(require_admin)]
)


def _store(request: Request) -> AppStateStore:
    return request.app.state.container.app_store


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("/state")
async def get_state(request: Request) -> dict[str, object]:
    """Return the live app state."""
    store = _store(request)
    return {
        **store.state.to_snapshot(),
        "cartTotal": store.cart_total(),
        "pendingFreeDrinks": store.state.pending_free_drinks,
        "isSelectingFreeDrink": store.state.is_selecting_free_drink,
    }


@router.post("/cart")
async def add_to_cart(payload: AddToCartRequest, request: Request) -> dict[str, object]:
    """Add a customized drink to the cart."""
    store = _store(request)
    try:
        size = find_option(DRINK_SIZES, payload.size)
        sweetness = find_option(SWEETNESS_LEVELS, payload.sweetness)
        ice = find_option(ICE_LEVELS, payload.ice)
    except ValueError as exc:
        raise _bad_request(str(exc)) from exc
    item = store.add_to_cart(
        payload.coffee.to_coffee(), size, sweetness, ice, payload.quantity
    )
    return {"item": item.to_record(), "persisted": await store.flush()}


@router.delete("/cart/{item_id}")
async def remove_from_cart(item_id: str, request: Request) -> dict[str, object]:
    """Remove one cart line."""
    store = _store(request)
    if not store.remove_from_cart(item_id):
        raise _not_found("Cart item not found")
    return {"removed": item_id, "persisted": await store.flush()}


@router.delete("/cart")
async def clear_cart(request: Request) -> dict[str, object]:
    """Empty the cart."""
    store = _store(request)
    store.clear_cart()
    return {"cleared": True, "persisted": await store.flush()}


@router.post("/orders")
async def place_order(request: Request) -> dict[str, object]:
    """Place an order from the current cart."""
    store = _store(request)
    order = store.place_order()
    if order is None:
        raise _bad_request("Cart is empty")
    return {"order": order.to_record(), "persisted": await store.flush()}


@router.post("/orders/{order_id}/complete")
async def complete_order(order_id: str, request: Request) -> dict[str, object]:
    """Complete an in-process order and credit its rewards."""
    store = _store(request)
    order = store.complete_order(order_id)
    if order is None:
        raise _not_found("In-process order not found")
    return {"order": order.to_record(), "persisted": await store.flush()}


@router.post("/orders/{order_id}/cancel")
async def cancel_order(order_id: str, request: Request) -> dict[str, object]:
    """Cancel an in-process order."""
    store = _store(request)
    order = store.cancel_order(order_id)
    if order is None:
        raise _not_found("In-process order not found")
    return {"order": order.to_record(), "persisted": await store.flush()}


@router.post("/stamps")
async def add_stamp(request: Request) -> dict[str, object]:
    """Add one stamp to the card."""
    store = _store(request)
    earned = store.add_stamp()
    return {
        "stamps": store.state.stamps,
        "earned_free_drink": earned,
        "persisted": await store.flush(),
    }


@router.post("/points")
async def add_points(payload: PointsRequest, request: Request) -> dict[str, object]:
    """Credit points."""
    store = _store(request)
    store.add_points(payload.amount, payload.description)
    return {"points": store.state.points, "persisted": await store.flush()}


@router.post("/points/redeem")
async def redeem_points(payload: PointsRequest, request: Request) -> dict[str, object]:
    """Debit points."""
    store = _store(request)
    store.redeem_points(payload.amount, payload.description)
    return {"points": store.state.points, "persisted": await store.flush()}


@router.post("/free-drink/redeem")
async def redeem_free_drink(request: Request) -> dict[str, object]:
    """Trade points for a free drink."""
    store = _store(request)
    if not store.redeem_points_for_free_drink():
        raise _bad_request("Not enough points for a free drink")
    return {
        "points": store.state.points,
        "pendingFreeDrinks": store.state.pending_free_drinks,
        "persisted": await store.flush(),
    }


@router.post("/free-drink/select")
async def start_free_drink_selection(request: Request) -> dict[str, bool]:
    """Enter free-drink selection."""
    if not _store(request).start_free_drink_selection():
        raise _bad_request("No free drink available")
    return {"selecting": True}


@router.post("/free-drink/cancel")
async def cancel_free_drink_selection(request: Request) -> dict[str, bool]:
    """Leave free-drink selection."""
    _store(request).cancel_free_drink_selection()
    return {"selecting": False}


@router.post("/free-drink")
async def add_free_drink(
    payload: CoffeeRequest, request: Request
) -> dict[str, object]:
    """Add the selected free drink to the cart."""
    store = _store(request)
    item = store.add_free_drink_to_cart(payload.coffee.to_coffee())
    if item is None:
        raise _bad_request("Not selecting a free drink")
    return {"item": item.to_record(), "persisted": await store.flush()}


@router.post("/favorites/toggle")
async def toggle_favorite(
    payload: CoffeeRequest, request: Request
) -> dict[str, object]:
    """Add or remove a favorite."""
    store = _store(request)
    favorite = store.toggle_favorite(payload.coffee.to_coffee())
    return {"favorite": favorite, "persisted": await store.flush()}


@router.patch("/profile")
async def update_profile(
    payload: ProfileUpdateRequest, request: Request
) -> dict[str, object]:
    """Set one profile field."""
    store = _store(request)
    store.update_profile(payload.field, payload.value)
    return {"profile": store.state.user_profile, "persisted": await store.flush()}


@router.patch("/preferences")
async def update_preferences(
    payload: PreferencesUpdateRequest, request: Request
) -> dict[str, object]:
    """Merge preference changes."""
    store = _store(request)
    store.update_preferences(**payload.changes)
    return {"preferences": store.state.preferences, "persisted": await store.flush()}
