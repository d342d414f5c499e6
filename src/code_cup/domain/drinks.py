"""Drink references and customization options."""

from dataclasses import dataclass

# Raised by the ``from_record`` constructors for malformed records.
RECORD_ERRORS = (KeyError, TypeError, ValueError)


@dataclass(frozen=True)
class Coffee:
    """A coffee from the menu, as referenced by carts and favorites."""

    id: str
    name: str
    price: float
    description: str = ""
    category: str = ""

    def to_record(self) -> dict[str, object]:
        """Return the JSON-compatible representation."""
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "category": self.category,
        }

    @classmethod
    def from_record(cls, record: dict[str, object]) -> "Coffee":
        """Build a coffee from a stored record."""
        return cls(
            id=str(record["id"]),
            name=str(record.get("name") or ""),
            price=float(record.get("price") or 0.0),
            description=str(record.get("description") or ""),
            category=str(record.get("category") or ""),
        )


@dataclass(frozen=True)
class DrinkOption:
    """A size, sweetness or ice choice."""

    id: str
    name: str
    multiplier: float = 1.0

    def to_record(self) -> dict[str, object]:
        """Return the JSON-compatible representation."""
        return {"id": self.id, "name": self.name, "multiplier": self.multiplier}

    @classmethod
    def from_record(cls, record: object) -> "DrinkOption":
        """Build an option from a stored record."""
        if not isinstance(record, dict):
            record = {}
        multiplier = record.get("multiplier")
        if not isinstance(multiplier, int | float):
            multiplier = 1.0
        return cls(
            id=str(record.get("id") or ""),
            name=str(record.get("name") or ""),
            multiplier=float(multiplier),
        )


SMALL = DrinkOption("small", "Small", 1.0)
MEDIUM = DrinkOption("medium", "Medium", 1.3)
LARGE = DrinkOption("large", "Large", 1.6)
DRINK_SIZES = (SMALL, MEDIUM, LARGE)

SWEETNESS_LEVELS = (
    DrinkOption("none", "No Sugar"),
    DrinkOption("low", "Light Sweet"),
    DrinkOption("medium", "Medium Sweet"),
    DrinkOption("high", "Extra Sweet"),
)

ICE_LEVELS = (
    DrinkOption("none", "No Ice"),
    DrinkOption("light", "Light Ice"),
    DrinkOption("regular", "Regular Ice"),
    DrinkOption("extra", "Extra Ice"),
)

DEFAULT_SIZE = SMALL
DEFAULT_SWEETNESS = SWEETNESS_LEVELS[1]
DEFAULT_ICE = ICE_LEVELS[2]

# Fixed shape of a redeemed free drink.
FREE_DRINK_SIZE = SMALL
FREE_DRINK_SWEETNESS = DrinkOption("regular", "Regular")
FREE_DRINK_ICE = ICE_LEVELS[2]


def compute_price(coffee: Coffee, size: DrinkOption, quantity: int) -> float:
    """Return the line price for a customized drink, rounded to cents."""
    return round(coffee.price * size.multiplier * quantity, 2)


def find_option(options: tuple[DrinkOption, ...], option_id: str) -> DrinkOption:
    """Return the option with ``option_id``; raise ValueError when unknown."""
    for option in options:
        if option.id == option_id:
            return option
    known = ", ".join(option.id for option in options)
    raise ValueError(f"Unknown option {option_id!r}, expected one of: {known}")
