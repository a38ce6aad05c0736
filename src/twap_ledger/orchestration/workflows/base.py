"""
Base Workflow Implementation
============================

Provides the base workflow class and its result type.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from twap_ledger.orchestration.ports import WorkflowStatus

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    """Result of workflow execution."""

    status: WorkflowStatus
    duration_seconds: float = 0.0
    records_processed: int = 0
    records_written: int = 0
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == WorkflowStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "duration_seconds": self.duration_seconds,
            "records_processed": self.records_processed,
            "records_written": self.records_written,
            "errors": self.errors,
            "metadata": self.metadata,
        }


class BaseWorkflow(ABC):
    """
    Base class for workflow implementations.

    Provides template for workflow execution with standard lifecycle:
    1. Execute workflow logic
    2. Record status and duration
    3. Report results

    Fatal errors propagate to the caller unchanged (they carry the
    remediation hint); the status is set to FAILED first.
    """

    def __init__(self):
        """Initialize base workflow."""
        self._status = WorkflowStatus.PENDING
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def execute(self) -> WorkflowResult:
        """
        Execute the workflow with standard lifecycle.

        Returns:
            WorkflowResult of the run
        """
        started = time.monotonic()
        self._status = WorkflowStatus.RUNNING
        self._logger.info(f"Starting workflow: {self.__class__.__name__}")

        try:
            result = await self._execute_impl()
        except Exception as e:
            self._status = WorkflowStatus.FAILED
            self._logger.error(
                f"Workflow failed after {time.monotonic() - started:.2f}s: {e}"
            )
            raise

        result.duration_seconds = time.monotonic() - started
        self._status = result.status
        self._logger.info(
            f"Workflow finished ({result.status.value}) in {result.duration_seconds:.2f}s"
        )
        return result

    @abstractmethod
    async def _execute_impl(self) -> WorkflowResult:
        """
        Execute workflow-specific logic.

        Subclasses must implement this method with their business logic.
        """

    def get_status(self) -> WorkflowStatus:
        """Get current workflow status."""
        return self._status
