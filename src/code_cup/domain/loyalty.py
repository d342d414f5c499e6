"""Loyalty program rules and ledger entries."""

from dataclasses import dataclass

STAMPS_PER_FREE_DRINK = 8
POINTS_PER_DOLLAR = 5
FREE_DRINK_POINT_COST = 100
WELCOME_BONUS_POINTS = 100

EARNED = "earned"
REDEEMED = "redeemed"
REWARD = "reward"


@dataclass(frozen=True)
class PointEntry:
    """A signed entry in the point history ledger."""

    id: str
    date: str
    description: str
    points: int
    type: str

    def to_record(self) -> dict[str, object]:
        """Return the JSON-compatible representation."""
        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "points": self.points,
            "type": self.type,
        }

    @classmethod
    def from_record(cls, record: dict[str, object]) -> "PointEntry":
        """Build a ledger entry from a stored record."""
        return cls(
            id=str(record.get("id") or ""),
            date=str(record.get("date") or ""),
            description=str(record.get("description") or ""),
            points=int(record.get("points") or 0),
            type=str(record.get("type") or EARNED),
        )


@dataclass(frozen=True)
class StampResult:
    """Outcome of adding cups to the stamp card."""

    stamps: int
    earned_free_drink: bool


def advance_stamps(stamps: int, cups: int) -> StampResult:
    """Advance the stamp card by ``cups``, wrapping at a full card.

    A single advance credits at most one free drink.
    """
    total = stamps + cups
    return StampResult(
        stamps=total % STAMPS_PER_FREE_DRINK,
        earned_free_drink=total >= STAMPS_PER_FREE_DRINK,
    )
