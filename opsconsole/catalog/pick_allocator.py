"""Pick number allocation.

Suggests collision-free warehouse pick numbers for catalog variants. Used
numbers are indexed by product type and SKU prefix so a new variant lands
next to its siblings; cohort markers in the SKU or title steer it into a
reserved band instead.

The allocation state is a plain value object. Callers rebuild it whenever
the variant set changes materially and pass it to every call; suggestions
are reserved in the state immediately so two suggestions never collide.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from opsconsole.core.errors import VariantNotFoundError
from opsconsole.models import Variant

FORTHCOMING_BAND = (9000, 9999)  # Next-year cohort and imperfect stock
PRIOR_YEAR_BAND = (1000, 1999)

GAP_MIN = 2
GAP_MAX = 10
PROBE_ABOVE = 100
PROBE_BELOW = 50

IMPERFECT_CODES = {"IM", "IMP", "IMPERFECT"}

_SKU_SPLIT = re.compile(r"[-_/\s]+")
_YEAR_SEGMENT = re.compile(r"^(?:20)?(\d{2})$")
_TITLE_YEAR = re.compile(r"\b(20\d{2})\b")

# Fields an unsaved edit may override during rebuild
OVERLAY_FIELDS = ("sku", "pick_number", "product_type", "warehouse_location")


@dataclass
class PickAllocationState:
    """Index of used pick numbers, rebuilt from the full variant set."""

    used_pick_numbers: set[str] = field(default_factory=set)
    picks_by_product_type: dict[str, list[int]] = field(default_factory=dict)
    picks_by_sku_prefix: dict[str, list[int]] = field(default_factory=dict)
    global_max_pick: int = 0
    next_counter: int = 1
    variants: dict[str, Variant] = field(default_factory=dict)
    pending_changes: dict[str, dict[str, Any]] = field(default_factory=dict)
    today: date = field(default_factory=date.today)

    def is_used(self, number: int | str) -> bool:
        return normalize_pick_number(number) in self.used_pick_numbers

    def reserve(self, number: int | str) -> None:
        normalized = normalize_pick_number(number)
        if normalized:
            self.used_pick_numbers.add(normalized)

    def get_variant(self, variant_id: str | int) -> Variant:
        variant = self.variants.get(str(variant_id))
        if variant is None:
            raise VariantNotFoundError(str(variant_id))
        return variant


def normalize_pick_number(value: Any) -> str:
    """Canonical text for a pick number ("0103" and "103" are the same slot)."""
    if value is None:
        return ""
    text = str(value).strip()
    if text.isdigit():
        return str(int(text))
    return text


def parse_pick_number(value: Any) -> int | None:
    text = normalize_pick_number(value)
    return int(text) if text.isdigit() else None


def sku_prefix(sku: str | None) -> str | None:
    """SKU text before the first hyphen, uppercased."""
    if not sku or not sku.strip():
        return None
    return sku.strip().split("-", 1)[0].upper() or None


def rebuild(
    variants: Iterable[Variant | Mapping[str, Any]],
    pending_changes: Mapping[str, Mapping[str, Any]] | None = None,
    *,
    today: date | None = None,
) -> PickAllocationState:
    """Build allocation state from scratch.

    Args:
        variants: Every catalog variant (archived ones are ignored)
        pending_changes: Unsaved edits by variant id, overlaid before indexing
        today: Reference date for cohort years (defaults to today)

    Returns:
        Fresh PickAllocationState
    """
    pending = {str(k): dict(v) for k, v in (pending_changes or {}).items()}
    state = PickAllocationState(pending_changes=pending, today=today or date.today())

    by_type: dict[str, set[int]] = {}
    by_prefix: dict[str, set[int]] = {}

    for raw in variants:
        variant = Variant.model_validate(raw)
        if variant.is_archived:
            continue

        edits = {k: v for k, v in pending.get(variant.variant_id, {}).items() if k in OVERLAY_FIELDS}
        if edits:
            variant = variant.model_copy(update=edits)
        state.variants[variant.variant_id] = variant

        normalized = normalize_pick_number(variant.pick_number)
        if not normalized:
            continue
        state.used_pick_numbers.add(normalized)

        number = parse_pick_number(normalized)
        if number is None:
            continue

        if variant.product_type and variant.product_type.strip():
            by_type.setdefault(variant.product_type.strip().lower(), set()).add(number)
        prefix = sku_prefix(variant.sku)
        if prefix:
            by_prefix.setdefault(prefix, set()).add(number)
        state.global_max_pick = max(state.global_max_pick, number)

    state.picks_by_product_type = {k: sorted(v) for k, v in by_type.items()}
    state.picks_by_sku_prefix = {k: sorted(v) for k, v in by_prefix.items()}
    state.next_counter = state.global_max_pick + 1
    return state


def cohort_band(variant: Variant, today: date) -> tuple[int, int] | None:
    """Reserved pick range implied by cohort markers on the SKU or title."""
    sku = (variant.sku or "").strip().upper()
    segments = [s for s in _SKU_SPLIT.split(sku) if s]
    titles = " ".join(t for t in (variant.title, variant.product_title) if t)

    if any(s in IMPERFECT_CODES for s in segments) or "imperfect" in (
        f"{titles} {sku}".lower()
    ):
        return FORTHCOMING_BAND

    years: set[int] = set()
    for segment in segments:
        match = _YEAR_SEGMENT.match(segment)
        if match:
            years.add(2000 + int(match.group(1)))
    years.update(int(y) for y in _TITLE_YEAR.findall(titles))

    if today.year + 1 in years:
        return FORTHCOMING_BAND
    if today.year - 1 in years:
        return PRIOR_YEAR_BAND
    return None


def suggest_next(state: PickAllocationState, variant_id: str | int) -> int:
    """Suggest a free pick number for a variant and reserve it.

    Strategies, first success wins: cohort band, SKU-prefix neighbourhood,
    product-type neighbourhood, global counter.

    Raises:
        VariantNotFoundError: If the variant is not in the state
    """
    variant = state.get_variant(variant_id)

    suggestion = _probe_band(state, cohort_band(variant, state.today))

    if suggestion is None:
        prefix = sku_prefix(variant.sku)
        if prefix:
            suggestion = _probe_neighbourhood(state, state.picks_by_sku_prefix.get(prefix))

    if suggestion is None and variant.product_type and variant.product_type.strip():
        suggestion = _probe_neighbourhood(
            state,
            state.picks_by_product_type.get(variant.product_type.strip().lower()),
        )

    if suggestion is None:
        suggestion = _next_global(state)

    state.reserve(suggestion)
    return suggestion


def accept(state: PickAllocationState, variant_id: str | int, number: int | str) -> None:
    """Commit a pick number to a variant's pending changes.

    Raises:
        VariantNotFoundError: If the variant is not in the state
    """
    variant = state.get_variant(variant_id)
    pick = normalize_pick_number(number)

    changes = state.pending_changes.setdefault(variant.variant_id, {})
    changes["pick_number"] = pick
    state.variants[variant.variant_id] = variant.model_copy(
        update={
            "pick_number": pick,
            "dirty_flags": {**variant.dirty_flags, "shopify": True, "shipstation": True},
        }
    )
    state.reserve(pick)


def generate_pick_numbers(
    state: PickAllocationState, variant_ids: Iterable[str | int]
) -> dict[str, int]:
    """Suggest and accept pick numbers for selected variants that have none.

    Returns:
        Assigned pick number by variant id
    """
    assigned: dict[str, int] = {}
    for variant_id in variant_ids:
        variant = state.get_variant(variant_id)
        if normalize_pick_number(variant.pick_number):
            continue
        number = suggest_next(state, variant.variant_id)
        accept(state, variant.variant_id, number)
        assigned[variant.variant_id] = number
    return assigned


def _probe_band(state: PickAllocationState, band: tuple[int, int] | None) -> int | None:
    if band is None:
        return None
    low, high = band
    for number in range(low, high + 1):
        if not state.is_used(number):
            return number
    return None


def _probe_neighbourhood(
    state: PickAllocationState, numbers: list[int] | None
) -> int | None:
    if not numbers:
        return None

    # Earliest small gap between neighbours
    for low, high in zip(numbers, numbers[1:]):
        if GAP_MIN <= high - low <= GAP_MAX:
            for number in range(low + 1, high):
                if not state.is_used(number):
                    return number

    top = numbers[-1]
    for number in range(top + 1, top + PROBE_ABOVE + 1):
        if not state.is_used(number):
            return number

    bottom = numbers[0]
    for number in range(bottom - 1, max(bottom - PROBE_BELOW - 1, 0), -1):
        if not state.is_used(number):
            return number

    return None


def _next_global(state: PickAllocationState) -> int:
    while state.is_used(state.next_counter):
        state.next_counter += 1
    number = state.next_counter
    state.next_counter += 1
    return number
