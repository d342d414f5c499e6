"""Domain models for the shopping cart."""

from dataclasses import dataclass

from code_cup.domain.drinks import Coffee, DrinkOption


@dataclass(frozen=True)
class CartItem:
    """A customized drink line in the cart or in an order snapshot."""

    id: str
    coffee: Coffee
    size: DrinkOption
    sweetness: DrinkOption
    ice: DrinkOption
    quantity: int
    total_price: float
    is_free: bool = False

    @property
    def customization(self) -> str:
        """Return a human-readable summary of the chosen options."""
        return f"{self.size.name}, {self.sweetness.name}, {self.ice.name}"

    def to_record(self) -> dict[str, object]:
        """Return the stored representation with coffee fields flattened in."""
        record = self.coffee.to_record()
        record.update(
            {
                "id": self.id,
                "coffeeId": self.coffee.id,
                "size": self.size.to_record(),
                "sweetness": self.sweetness.to_record(),
                "ice": self.ice.to_record(),
                "quantity": self.quantity,
                "totalPrice": self.total_price,
                "isFree": self.is_free,
                "customization": self.customization,
            }
        )
        return record

    @classmethod
    def from_record(cls, record: dict[str, object]) -> "CartItem":
        """Build a cart item from a stored record.

        Older records carry the coffee fields without ``coffeeId``; the line
        id doubles as the coffee id in that case.
        """
        coffee = Coffee.from_record(
            {**record, "id": record.get("coffeeId") or record["id"]}
        )
        return cls(
            id=str(record["id"]),
            coffee=coffee,
            size=DrinkOption.from_record(record.get("size")),
            sweetness=DrinkOption.from_record(record.get("sweetness")),
            ice=DrinkOption.from_record(record.get("ice")),
            quantity=int(record.get("quantity") or 1),
            total_price=float(record.get("totalPrice") or 0.0),
            is_free=bool(record.get("isFree", False)),
        )
