"""Utility modules."""

from campus_rentals.utils.logging import WorkflowLogger, get_logger, setup_logging

__all__ = ["setup_logging", "get_logger", "WorkflowLogger"]
