"""Order reconciliation and change detection."""

from opsconsole.orders.cache import ChangeCache, is_skippable
from opsconsole.orders.classifier import classify, is_noise_item
from opsconsole.orders.comparator import compare, compare_orders
from opsconsole.orders.detector import ChangeDetectionJob, JobState

__all__ = [
    "ChangeCache",
    "ChangeDetectionJob",
    "JobState",
    "classify",
    "compare",
    "compare_orders",
    "is_noise_item",
    "is_skippable",
]
