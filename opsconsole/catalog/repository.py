"""Catalog store queries for pick number allocation and validation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from opsconsole.catalog.pick_allocator import normalize_pick_number
from opsconsole.db.models import VariantModel
from opsconsole.models import Variant

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Read and write catalog variants through an async session.

    The caller owns the session and its transaction (see
    ``opsconsole.db.connection.get_session``).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active_variants(self) -> list[Variant]:
        """All non-archived variants, ordered by id."""
        stmt = (
            select(VariantModel)
            .options(selectinload(VariantModel.product))
            .where(VariantModel.is_archived == False)  # noqa: E712
            .order_by(VariantModel.id)
        )
        result = await self.session.execute(stmt)
        return [_row_to_variant(row) for row in result.scalars().all()]

    async def get_variants(self, variant_ids: Iterable[str]) -> list[Variant]:
        """Variants by commerce variant id (missing ids are skipped)."""
        ids = [str(v) for v in variant_ids]
        if not ids:
            return []

        stmt = (
            select(VariantModel)
            .options(selectinload(VariantModel.product))
            .where(VariantModel.shopify_variant_id.in_(ids))
        )
        result = await self.session.execute(stmt)
        return [_row_to_variant(row) for row in result.scalars().all()]

    async def find_existing_pick_numbers(
        self,
        pick_numbers: Iterable[str],
        exclude_ids: Iterable[str] = (),
    ) -> list[Variant]:
        """Active variants outside ``exclude_ids`` already holding a pick number.

        Args:
            pick_numbers: Pick numbers proposed for save
            exclude_ids: Variant ids being updated in the same batch

        Returns:
            Matching variants (stored values compared after normalisation)
        """
        wanted = {normalize_pick_number(p) for p in pick_numbers} - {""}
        if not wanted:
            return []
        excluded = [str(v) for v in exclude_ids]

        conditions = [
            VariantModel.is_archived == False,  # noqa: E712
            VariantModel.pick_number.is_not(None),
        ]
        if excluded:
            conditions.append(VariantModel.shopify_variant_id.not_in(excluded))

        stmt = (
            select(VariantModel)
            .options(selectinload(VariantModel.product))
            .where(and_(*conditions))
        )
        result = await self.session.execute(stmt)

        # Normalised in Python so "0103" and "103" collide
        return [
            _row_to_variant(row)
            for row in result.scalars().all()
            if normalize_pick_number(row.pick_number) in wanted
        ]

    async def apply_pick_numbers(self, changes: Mapping[str, str | int | None]) -> int:
        """Write pick numbers and mark the variants for fulfillment resync.

        Args:
            changes: Pick number by variant id

        Returns:
            Number of variants updated
        """
        if not changes:
            return 0

        stmt = select(VariantModel).where(
            VariantModel.shopify_variant_id.in_([str(k) for k in changes])
        )
        result = await self.session.execute(stmt)

        updated = 0
        for row in result.scalars().all():
            pick = normalize_pick_number(changes[row.shopify_variant_id]) or None
            row.pick_number = pick
            # Reassign so the JSON column registers the change
            row.dirty_flags = {**(row.dirty_flags or {}), "shipstation": True}
            updated += 1

        await self.session.flush()
        logger.info(f"Applied pick numbers to {updated} variants")
        return updated


def _row_to_variant(row: VariantModel) -> Variant:
    product = row.product
    return Variant(
        variant_id=row.shopify_variant_id,
        product_id=row.shopify_product_id,
        sku=row.sku,
        title=row.variant_title,
        product_title=product.title if product else None,
        product_type=product.product_type if product else None,
        pick_number=row.pick_number,
        warehouse_location=row.warehouse_location,
        price=row.price,
        weight_grams=row.weight_grams,
        harmonized_system_code=row.harmonized_system_code,
        country_code_of_origin=row.country_code_of_origin,
        is_archived=row.is_archived,
        dirty_flags=dict(row.dirty_flags or {"shopify": False, "shipstation": False}),
    )
