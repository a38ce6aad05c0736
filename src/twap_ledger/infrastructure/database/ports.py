"""
Database adapter interface.
Provides abstraction over database operations for dependency injection.
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from pathlib import Path
from typing import Any, Protocol


class IDatabaseAdapter(Protocol):
    """
    Protocol defining database operations interface.
    Enables dependency injection and testing with different implementations.
    """

    async def connect(self) -> None:
        """Establish database connection."""
        ...

    async def disconnect(self) -> None:
        """Close database connection."""
        ...

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a statement and return its status tag (e.g. 'INSERT 0 5')."""
        ...

    async def fetch_one(self, query: str, *args: Any) -> dict[str, Any] | None:
        """Fetch single row as dictionary."""
        ...

    async def fetch_all(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Fetch all rows as list of dictionaries."""
        ...

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Fetch the first column of the first row."""
        ...

    async def copy_csv(self, table: str, path: Path, columns: Sequence[str]) -> int:
        """
        Bulk load a headerless CSV file with server-side COPY.

        Args:
            table: Target table
            path: Local CSV file
            columns: Column order of the file

        Returns:
            Number of rows copied
        """
        ...

    def transaction(self) -> AbstractAsyncContextManager[Any]:
        """Context manager yielding a connection inside a transaction."""
        ...

    def advisory_lock(self, key: int) -> AbstractAsyncContextManager[None]:
        """
        Hold a session advisory lock for the duration of the block.

        Raises:
            MigrationLockError: If the lock is held by another session
        """
        ...
