"""Destination schema: production, staging and leaderboard tables.

Table Schema:
  trades:
    - id: BIGSERIAL PRIMARY KEY (explicit ids from CSV generation)
    - coin, time, price, size, hash, trade_dir_override
  trade_participants:
    - id: BIGSERIAL PRIMARY KEY
    - trade_id: BIGINT REFERENCES trades(id) ON DELETE CASCADE
    - user_address, side, start_pos, order_id, strategy_id, client_order_id
  trades_staging / trade_participants_staging:
    - same columns, no constraints (bulk COPY targets)
  leaderboard_stats:
    - one ranked row per user
  leaderboard_state:
    - single row: last trade id folded into leaderboard_stats
"""

# Column order shared by the CSV emitter, COPY and the migration SQL
TRADE_COLUMNS = (
    "id",
    "coin",
    "time",
    "price",
    "size",
    "hash",
    "trade_dir_override",
)

PARTICIPANT_COLUMNS = (
    "trade_id",
    "user_address",
    "side",
    "start_pos",
    "order_id",
    "strategy_id",
    "client_order_id",
)

TRADES_TABLE = "trades"
PARTICIPANTS_TABLE = "trade_participants"
TRADES_STAGING_TABLE = "trades_staging"
PARTICIPANTS_STAGING_TABLE = "trade_participants_staging"
LEADERBOARD_TABLE = "leaderboard_stats"
LEADERBOARD_STATE_TABLE = "leaderboard_state"
TRADES_ID_SEQUENCE = "trades_id_seq"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS trades (
        id BIGSERIAL PRIMARY KEY,
        coin TEXT NOT NULL,
        time TIMESTAMPTZ NOT NULL,
        price NUMERIC NOT NULL,
        size NUMERIC NOT NULL,
        hash TEXT NOT NULL,
        trade_dir_override TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trade_participants (
        id BIGSERIAL PRIMARY KEY,
        trade_id BIGINT NOT NULL REFERENCES trades(id) ON DELETE CASCADE,
        user_address TEXT NOT NULL,
        side CHAR(1) NOT NULL CHECK (side IN ('A', 'B')),
        start_pos NUMERIC NOT NULL,
        order_id BIGINT NOT NULL,
        strategy_id BIGINT,
        client_order_id TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trades_staging (
        id BIGINT,
        coin TEXT,
        time TIMESTAMPTZ,
        price NUMERIC,
        size NUMERIC,
        hash TEXT,
        trade_dir_override TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trade_participants_staging (
        id BIGINT,
        trade_id BIGINT,
        user_address TEXT,
        side CHAR(1),
        start_pos NUMERIC,
        order_id BIGINT,
        strategy_id BIGINT,
        client_order_id TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS leaderboard_stats (
        user_address TEXT PRIMARY KEY,
        total_volume NUMERIC NOT NULL,
        total_trades BIGINT NOT NULL,
        unique_strategies BIGINT NOT NULL,
        rank BIGINT NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS leaderboard_state (
        singleton BOOLEAN PRIMARY KEY DEFAULT TRUE CHECK (singleton),
        last_trade_id BIGINT NOT NULL,
        refreshed_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_trades_time ON trades (time)",
    "CREATE INDEX IF NOT EXISTS idx_trade_participants_trade_id "
    "ON trade_participants (trade_id)",
    "CREATE INDEX IF NOT EXISTS idx_trade_participants_strategy "
    "ON trade_participants (strategy_id) WHERE strategy_id IS NOT NULL",
    "CREATE INDEX IF NOT EXISTS idx_trade_participants_user "
    "ON trade_participants (lower(user_address))",
    "CREATE INDEX IF NOT EXISTS idx_leaderboard_rank ON leaderboard_stats (rank)",
)
