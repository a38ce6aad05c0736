"""
Trade id allocation.

Ids are assigned at CSV generation time, before the database sees the rows,
so one allocator must be shared by every source processed in a run and its
high-water mark persisted between runs.
"""

import logging
from typing import Protocol

from twap_ledger.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ITrackingStore(Protocol):
    """Persistence for the last allocated id."""

    def read(self) -> int | None: ...

    def write(self, last_id: int) -> None: ...


class IdAllocator:
    """
    Hands out strictly increasing trade ids.

    Owned by a single run. Nothing is persisted until checkpoint() is called
    after the run has fully succeeded.
    """

    def __init__(self, next_id: int = 1, store: ITrackingStore | None = None):
        if next_id < 1:
            raise ConfigurationError(
                f"Start id must be a positive integer, got {next_id}"
            )
        self._first_id = next_id
        self._next_id = next_id
        self._store = store

    @classmethod
    def from_checkpoint(
        cls, store: ITrackingStore, start_id: int | None = None
    ) -> "IdAllocator":
        """
        Resolve the starting id.

        Precedence: explicit start_id > stored last id + 1 > 1.
        """
        if start_id is not None:
            if start_id < 1:
                raise ConfigurationError(
                    f"--start-id must be a positive integer, got {start_id}"
                )
            logger.info(f"📍 Using explicit start id: {start_id}")
            return cls(start_id, store)

        last_id = store.read()
        if last_id is not None:
            logger.info(f"📍 Resuming from tracking file: last id {last_id}")
            return cls(last_id + 1, store)

        logger.info("📍 No tracking file, starting from id 1")
        return cls(1, store)

    @property
    def next_id(self) -> int:
        """Id the next allocate() call will return."""
        return self._next_id

    @property
    def last_allocated(self) -> int | None:
        if self._next_id == self._first_id:
            return None
        return self._next_id - 1

    @property
    def allocated_count(self) -> int:
        return self._next_id - self._first_id

    def allocate(self) -> int:
        trade_id = self._next_id
        self._next_id += 1
        return trade_id

    def checkpoint(self) -> bool:
        """
        Persist the last allocated id.

        Returns:
            True if a value was written, False if nothing was allocated
        """
        last_id = self.last_allocated
        if last_id is None:
            logger.info("No ids allocated, tracking file left unchanged")
            return False
        if self._store is None:
            raise ConfigurationError("IdAllocator has no tracking store to checkpoint")

        self._store.write(last_id)
        return True
