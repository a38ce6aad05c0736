from .ports import IDatabaseAdapter
from .postgres import PostgresDatabase
from .retry import RetryPolicy

__all__ = [
    "IDatabaseAdapter",
    "PostgresDatabase",
    "RetryPolicy",
]
