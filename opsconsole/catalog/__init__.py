"""Catalog warehouse tooling: pick number allocation and uniqueness checks."""

from opsconsole.catalog.pick_allocator import (
    PickAllocationState,
    accept,
    generate_pick_numbers,
    rebuild,
    suggest_next,
)
from opsconsole.catalog.validation import (
    find_duplicate_pick_numbers,
    find_duplicate_skus,
    validate_pick_number_uniqueness,
)

__all__ = [
    "PickAllocationState",
    "accept",
    "find_duplicate_pick_numbers",
    "find_duplicate_skus",
    "generate_pick_numbers",
    "rebuild",
    "suggest_next",
    "validate_pick_number_uniqueness",
]
