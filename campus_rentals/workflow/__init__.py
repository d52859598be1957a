"""Workflow engines for rentals, orders and returns."""

from campus_rentals.workflow.approval import ApprovalEngine
from campus_rentals.workflow.base import CATALOG, HOLDINGS, REQUESTS, RETURNS, BaseEngine
from campus_rentals.workflow.catalog import CatalogService
from campus_rentals.workflow.ledger import RequestLedger
from campus_rentals.workflow.orders import OrderWorkflow
from campus_rentals.workflow.reports import (
    SalesReport,
    kitchen_summary,
    sales_report,
    status_counts,
)
from campus_rentals.workflow.returns import ReturnEngine

__all__ = [
    "CATALOG",
    "HOLDINGS",
    "REQUESTS",
    "RETURNS",
    "BaseEngine",
    "ApprovalEngine",
    "CatalogService",
    "RequestLedger",
    "OrderWorkflow",
    "ReturnEngine",
    "SalesReport",
    "kitchen_summary",
    "sales_report",
    "status_counts",
]
