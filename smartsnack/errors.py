"""Error taxonomy for order writes and the subscription feed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


class OrderEngineError(Exception):
    """Base class for failures surfaced by the order engine."""


class IllegalTransition(OrderEngineError):
    """A requested status change is not allowed by the status machine."""

    def __init__(self, order_id: str, current: str | None, requested: str) -> None:
        self.order_id = order_id
        self.current = current
        self.requested = requested
        if current is None:
            message = f"Order {order_id} is unknown; cannot move it to {requested}"
        else:
            message = f"Order {order_id} cannot move from {current} to {requested}"
        super().__init__(message)


class WriteFailed(OrderEngineError):
    """The store rejected or could not complete a create/update/delete."""

    def __init__(self, operation: str, target: str, reason: str) -> None:
        self.operation = operation
        self.target = target
        self.reason = reason
        super().__init__(f"{operation} failed for {target}: {reason}")


class PartialSettlement(OrderEngineError):
    """A table settlement updated some, but not all, captured orders."""

    def __init__(self, table_number: str, settled_ids: Iterable[str], failed_ids: Iterable[str]) -> None:
        self.table_number = table_number
        self.settled_ids = tuple(settled_ids)
        self.failed_ids = tuple(failed_ids)
        super().__init__(
            f"Table {table_number} partially settled: "
            f"{len(self.settled_ids)} paid, {len(self.failed_ids)} failed ({', '.join(self.failed_ids)})"
        )


class SubscriptionError(OrderEngineError):
    """The store feed delivered an error instead of a snapshot."""


@dataclass(frozen=True)
class MalformedRecord:
    """A field of a store record that was missing or invalid and got defaulted."""

    record_id: str | None
    field: str
    reason: str

    def __str__(self) -> str:
        return f"record {self.record_id or '?'}: {self.field} {self.reason}"
