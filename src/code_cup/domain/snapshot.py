"""Pydantic model for exported app data."""

import copy
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from code_cup.domain.cart import CartItem
from code_cup.domain.drinks import RECORD_ERRORS, Coffee
from code_cup.domain.loyalty import STAMPS_PER_FREE_DRINK, PointEntry
from code_cup.domain.orders import Order
from code_cup.domain.profile import DEFAULT_PREFERENCES

_RECORD_PARSERS: dict[str, Callable[[dict[str, Any]], object]] = {
    "cart_items": CartItem.from_record,
    "favorites": Coffee.from_record,
    "point_history": PointEntry.from_record,
    "current_orders": Order.from_record,
    "order_history": Order.from_record,
}


class ExportSnapshot(BaseModel):
    """Backup payload produced by an export and accepted by an import."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_profile: dict[str, Any] = Field(alias="userProfile")
    export_date: str = Field(alias="exportDate", min_length=1)
    app_version: str | None = Field(default=None, alias="appVersion")
    cart_items: list[dict[str, Any]] = Field(default_factory=list, alias="cartItems")
    favorites: list[dict[str, Any]] = Field(default_factory=list)
    stamps: int = Field(default=0, ge=0, lt=STAMPS_PER_FREE_DRINK)
    points: int = Field(default=0, ge=0)
    point_history: list[dict[str, Any]] = Field(
        default_factory=list, alias="pointHistory"
    )
    current_orders: list[dict[str, Any]] = Field(
        default_factory=list, alias="currentOrders"
    )
    order_history: list[dict[str, Any]] = Field(
        default_factory=list, alias="orderHistory"
    )
    user_preferences: dict[str, Any] = Field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PREFERENCES),
        alias="userPreferences",
    )

    @field_validator(*_RECORD_PARSERS)
    @classmethod
    def check_records(
        cls, value: list[dict[str, Any]], info: ValidationInfo
    ) -> list[dict[str, Any]]:
        """Reject records the app state could not rebuild."""
        parser = _RECORD_PARSERS[info.field_name]
        for index, record in enumerate(value):
            try:
                parser(record)
            except RECORD_ERRORS as exc:
                raise ValueError(f"record {index} is unreadable: {exc!r}") from exc
        return value

    def state(self) -> dict[str, object]:
        """Return the catalog slices keyed by their storage names."""
        return self.model_dump(by_alias=True, exclude={"export_date", "app_version"})
