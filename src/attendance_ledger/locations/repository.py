from __future__ import annotations

from typing import Protocol


class LocationRepository(Protocol):
    """Location provider. Location CRUD lives outside the ledger."""

    def exists(self, location_id: int) -> bool:
        raise NotImplementedError
