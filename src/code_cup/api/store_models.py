"""Pydantic models for store action request bodies."""

from typing import Any

from pydantic import BaseModel, Field

from code_cup.domain.drinks import Coffee


class CoffeePayload(BaseModel):
    """Menu coffee referenced by a store action."""

    id: str = Field(min_length=1)
    name: str
    price: float = Field(ge=0)
    description: str = ""
    category: str = ""

    def to_coffee(self) -> Coffee:
        """Return the domain coffee."""
        return Coffee(**self.model_dump())


class CoffeeRequest(BaseModel):
    coffee: CoffeePayload


class AddToCartRequest(BaseModel):
    """Customized drink to add to the cart, options given by id."""

    coffee: CoffeePayload
    size: str = "small"
    sweetness: str = "low"
    ice: str = "regular"
    quantity: int = Field(default=1, ge=1)


class PointsRequest(BaseModel):
    amount: int = Field(gt=0)
    description: str = Field(min_length=1)


class ProfileUpdateRequest(BaseModel):
    field: str = Field(min_length=1)
    value: Any


class PreferencesUpdateRequest(BaseModel):
    changes: dict[str, Any]
