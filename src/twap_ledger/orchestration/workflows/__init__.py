"""
Workflow implementations: staged import, daily sync and leaderboard refresh.
"""

from twap_ledger.orchestration.workflows.base import BaseWorkflow, WorkflowResult
from twap_ledger.orchestration.workflows.daily_sync import DailySyncWorkflow
from twap_ledger.orchestration.workflows.import_workflow import (
    ImportDryRun,
    ImportOptions,
    StagedImportWorkflow,
)
from twap_ledger.orchestration.workflows.leaderboard_workflow import LeaderboardWorkflow

__all__ = [
    "BaseWorkflow",
    "DailySyncWorkflow",
    "ImportDryRun",
    "ImportOptions",
    "LeaderboardWorkflow",
    "StagedImportWorkflow",
    "WorkflowResult",
]
