"""
TWAP trade ledger for Hyperliquid node data.
Modular architecture with clean separation of concerns.

Modules:
- ingestion: Raw record parsing, TWAP filtering, id allocation, CSV generation
- storage: CSV format, schema DDL, PostgreSQL repositories
- orchestration: Staged import, daily sync, leaderboard workflows
- infrastructure: Config, database, logging, tracking file
"""

__version__ = "0.1.0"
