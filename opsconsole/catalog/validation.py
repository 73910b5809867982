"""Uniqueness checks for pick numbers and SKUs.

Uniqueness is enforced here rather than by a database constraint: imported
catalog data may already contain duplicates, which are reported so an
operator can resolve them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from opsconsole.catalog.pick_allocator import normalize_pick_number
from opsconsole.models import DuplicateGroup, PickConflict, PickNumberUpdate, Variant


def validate_pick_number_uniqueness(
    updates: Iterable[PickNumberUpdate | Mapping[str, Any]],
    existing: Iterable[Variant | Mapping[str, Any]],
) -> list[PickConflict]:
    """Find pick number conflicts in a batch of edits.

    Args:
        updates: Proposed ``{id, pick_number}`` edits
        existing: Saved catalog variants to check against

    Returns:
        Batch-internal duplicates first, then clashes with saved variants
        outside the batch (archived variants are ignored)
    """
    batch = [PickNumberUpdate.model_validate(u) for u in updates]
    batch_ids = {u.id for u in batch}

    proposed: dict[str, list[str]] = {}
    for update in batch:
        pick = normalize_pick_number(update.pick_number)
        if pick:
            proposed.setdefault(pick, []).append(update.id)

    conflicts: list[PickConflict] = []
    for pick, variant_ids in proposed.items():
        if len(variant_ids) > 1:
            conflicts.append(
                PickConflict(
                    pick_number=pick,
                    type="batch_duplicate",
                    variant_ids=variant_ids,
                    message=f'Pick number "{pick}" is assigned to multiple variants in this update',
                )
            )

    for raw in existing:
        variant = Variant.model_validate(raw)
        if variant.is_archived or variant.variant_id in batch_ids:
            continue
        pick = normalize_pick_number(variant.pick_number)
        if pick and pick in proposed:
            conflicts.append(
                PickConflict(
                    pick_number=pick,
                    type="existing_duplicate",
                    variant_ids=proposed[pick],
                    existing_variant_id=variant.variant_id,
                    message=f'Pick number "{pick}" already exists on variant {variant.variant_id}',
                )
            )

    return conflicts


def find_empty_pick_numbers(
    updates: Iterable[PickNumberUpdate | Mapping[str, Any]],
) -> list[str]:
    """Ids of updates that explicitly clear a pick number."""
    return [
        u.id
        for u in (PickNumberUpdate.model_validate(u) for u in updates)
        if u.pick_number is not None and not u.pick_number.strip()
    ]


def find_duplicate_pick_numbers(
    variants: Iterable[Variant | Mapping[str, Any]],
) -> list[DuplicateGroup]:
    """Pick numbers shared by more than one active variant."""
    return _duplicates(variants, lambda v: normalize_pick_number(v.pick_number))


def find_duplicate_skus(
    variants: Iterable[Variant | Mapping[str, Any]],
) -> list[DuplicateGroup]:
    """SKUs shared by more than one active variant."""
    return _duplicates(variants, lambda v: (v.sku or "").strip())


def _duplicates(
    variants: Iterable[Variant | Mapping[str, Any]],
    key: Callable[[Variant], str],
) -> list[DuplicateGroup]:
    groups: dict[str, list[Variant]] = {}
    for raw in variants:
        variant = Variant.model_validate(raw)
        if variant.is_archived:
            continue
        value = key(variant)
        if value:
            groups.setdefault(value, []).append(variant)

    return [
        DuplicateGroup(
            value=value,
            count=len(members),
            variant_ids=[m.variant_id for m in members],
            skus=[m.sku for m in members],
        )
        for value, members in groups.items()
        if len(members) > 1
    ]
