"""
Leaderboard Workflow
====================

Dispatches a leaderboard refresh to one of three strategies:

- full: recompute every user and replace the table
- delta: recompute only users with trades ingested since the last refresh
- materialized: refresh a materialized view, then rank from it
"""

import logging
from collections.abc import Callable
from datetime import datetime

from twap_ledger.common.exceptions import BootstrapRequiredError
from twap_ledger.common.utils.date_utils import utc_now
from twap_ledger.infrastructure.observability import get_pipeline_logger
from twap_ledger.orchestration.ports import ILeaderboardStore, WorkflowStatus
from twap_ledger.orchestration.workflows.base import BaseWorkflow, WorkflowResult
from twap_ledger.shared.models.enums import LeaderboardStrategy

logger = logging.getLogger(__name__)


class LeaderboardWorkflow(BaseWorkflow):
    """Refreshes leaderboard_stats with the configured strategy."""

    def __init__(
        self,
        store: ILeaderboardStore,
        strategy: LeaderboardStrategy = LeaderboardStrategy.FULL,
        limit: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__()
        self.store = store
        self.strategy = strategy
        self.limit = limit
        self.clock = clock
        self._log = get_pipeline_logger("leaderboard", strategy=strategy.value)

    async def _execute_impl(self) -> WorkflowResult:
        handlers = {
            LeaderboardStrategy.FULL: self.run_full,
            LeaderboardStrategy.DELTA: self.run_delta,
            LeaderboardStrategy.MATERIALIZED: self.run_materialized,
        }
        result = await handlers[self.strategy]()
        result.metadata["strategy"] = self.strategy.value
        self._log.info("leaderboard_refreshed", ranked_users=result.records_written)
        return result

    async def run_full(self) -> WorkflowResult:
        ranked = await self.store.rebuild(self.clock(), self.limit)
        return WorkflowResult(status=WorkflowStatus.SUCCESS, records_written=ranked)

    async def run_delta(self) -> WorkflowResult:
        """
        Recompute users with trades ingested after the stored watermark id.

        Raises:
            BootstrapRequiredError: If the table has never been built
        """
        watermark, users = await self.store.status()
        if users == 0:
            raise BootstrapRequiredError()
        if watermark is None:
            raise BootstrapRequiredError("Leaderboard has no ingestion watermark")

        if self.limit is not None:
            logger.warning("⚠️ limit is ignored by the delta strategy")

        head = await self.store.latest_trade_id()
        new_trades = await self.store.count_trades_since(watermark, head)
        if new_trades == 0:
            logger.info(f"✅ No trades after id {watermark}, leaderboard is current")
            return WorkflowResult(
                status=WorkflowStatus.SUCCESS,
                records_written=users,
                metadata={"noop": True, "watermark_id": watermark},
            )

        affected = await self.store.affected_users(watermark, head)
        logger.info(
            f"🔄 {new_trades:,} trades in ids {watermark + 1}..{head}, "
            f"{len(affected):,} users affected"
        )
        ranked = await self.store.apply_delta(affected, self.clock(), head)
        return WorkflowResult(
            status=WorkflowStatus.SUCCESS,
            records_processed=new_trades,
            records_written=ranked,
            metadata={
                "noop": False,
                "watermark_id": watermark,
                "latest_trade_id": head,
                "users_updated": len(affected),
            },
        )

    async def run_materialized(self) -> WorkflowResult:
        # Read before the refresh so the stored watermark never runs ahead of the view
        head = await self.store.latest_trade_id()
        created = False
        if await self.store.view_exists():
            await self.store.refresh_view()
        else:
            await self.store.create_view()
            created = True

        ranked = await self.store.rebuild(
            self.clock(), self.limit, from_view=True, watermark_id=head
        )
        return WorkflowResult(
            status=WorkflowStatus.SUCCESS,
            records_written=ranked,
            metadata={"view_created": created},
        )
