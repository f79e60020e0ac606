"""Client reconciliation module."""

from .polling import PollingReconciler
from .view import DashboardView

__all__ = ["DashboardView", "PollingReconciler"]
