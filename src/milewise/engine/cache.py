from typing import Hashable, NamedTuple

from milewise.domain.models import CapUsage


class _Entry(NamedTuple):
    generation: int
    context: Hashable
    usages: list[CapUsage]


class CapUsageCache:
    """Read-through cache for cap usage, one entry per payment method.

    Entries carry the ledger generation they were computed at; a read with a
    different generation (or a different context) is a miss, so a write to the
    ledger can never be served a stale figure.
    """

    def __init__(self):
        self._entries: dict[str, _Entry] = {}

    def get(self, payment_method_id: str, generation: int, context: Hashable) -> list[CapUsage] | None:
        entry = self._entries.get(payment_method_id)
        if entry is None or entry.generation != generation or entry.context != context:
            return None
        return [usage.model_copy() for usage in entry.usages]

    def put(
        self, payment_method_id: str, generation: int, context: Hashable, usages: list[CapUsage]
    ) -> None:
        self._entries[payment_method_id] = _Entry(
            generation, context, [usage.model_copy() for usage in usages]
        )

    def __len__(self) -> int:
        return len(self._entries)
