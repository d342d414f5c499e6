"""Domain models for orders."""

from dataclasses import dataclass

from code_cup.domain.cart import CartItem

IN_PROCESS = "in-process"
COMPLETED = "completed"
CANCELLED = "cancelled"

ESTIMATED_TIME = "15-20 mins"


@dataclass(frozen=True)
class Order:
    """An order with its reward quantities fixed at placement time."""

    id: str
    items: list[CartItem]
    total_amount: float
    points_earned: int
    total_cups: int
    status: str
    order_date: str
    estimated_time: str = ESTIMATED_TIME
    completed_date: str | None = None
    cancelled_date: str | None = None
    free_items: int = 0

    def to_record(self) -> dict[str, object]:
        """Return the JSON-compatible representation."""
        record: dict[str, object] = {
            "id": self.id,
            "items": [item.to_record() for item in self.items],
            "totalAmount": self.total_amount,
            "pointsEarned": self.points_earned,
            "totalCups": self.total_cups,
            "freeItems": self.free_items,
            "status": self.status,
            "orderDate": self.order_date,
            "estimatedTime": self.estimated_time,
        }
        if self.completed_date is not None:
            record["completedDate"] = self.completed_date
        if self.cancelled_date is not None:
            record["cancelledDate"] = self.cancelled_date
        return record

    @classmethod
    def from_record(cls, record: dict[str, object]) -> "Order":
        """Build an order from a stored record."""
        raw_items = record.get("items") or []
        if not isinstance(raw_items, list) or not all(
            isinstance(item, dict) for item in raw_items
        ):
            raise ValueError("order items must be a list of records")
        return cls(
            id=str(record["id"]),
            items=[CartItem.from_record(item) for item in raw_items],
            total_amount=float(record.get("totalAmount") or 0.0),
            points_earned=int(record.get("pointsEarned") or 0),
            total_cups=int(record.get("totalCups") or 0),
            status=str(record.get("status") or IN_PROCESS),
            order_date=str(record.get("orderDate") or ""),
            estimated_time=str(record.get("estimatedTime") or ESTIMATED_TIME),
            completed_date=_optional_str(record.get("completedDate")),
            cancelled_date=_optional_str(record.get("cancelledDate")),
            free_items=int(record.get("freeItems") or 0),
        )


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None
