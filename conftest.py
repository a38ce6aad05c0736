"""
Root conftest: shared raw-data fixtures for the test suite.
"""

import logging
import sys
from pathlib import Path

import pytest

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from tests.fixtures import (  # noqa: E402
    create_fill_event,
    create_fills_block_line,
    create_node_trade_line,
    write_hour_file,
)

logger = logging.getLogger(__name__)


@pytest.fixture
def twap_trade_line() -> str:
    return create_node_trade_line(buyer_twap=42)


@pytest.fixture
def plain_trade_line() -> str:
    return create_node_trade_line(buyer_twap=None, seller_twap=None)


@pytest.fixture
def fills_block_3_plus_1() -> str:
    """Three fills sharing tid 77 plus one lone fill with tid 78."""
    return create_fills_block_line(
        [
            create_fill_event("0xa", 77, side="B", twap_id=9, oid=1),
            create_fill_event("0xb", 77, side="A", oid=2),
            create_fill_event("0xc", 77, side="A", oid=3),
            create_fill_event("0xd", 78, side="B", twap_id=10, oid=4),
        ]
    )


@pytest.fixture
def raw_tree(tmp_path: Path) -> Path:
    """Two node_trades days: 20250101 holds two TWAP trades, 20250102 one."""
    write_hour_file(
        tmp_path,
        "node_trades",
        "20250101",
        "0",
        [create_node_trade_line(buyer_twap=1), create_node_trade_line(buyer_twap=None)],
    )
    write_hour_file(
        tmp_path, "node_trades", "20250101", "10", [create_node_trade_line(seller_twap=2)]
    )
    write_hour_file(
        tmp_path, "node_trades", "20250102", "3", [create_node_trade_line(buyer_twap=3)]
    )
    return tmp_path
