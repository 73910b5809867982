"""Discount and promo line-item detection.

Orders on both platforms carry non-product lines (discount codes, referral
codes, gift cards, tips). Rules are evaluated in order and the first match
wins, so each rule can be audited and tested on its own.

Known limitation: short all-caps product SKUs without separators match the
named-promo shape and are classified as noise. Kept for parity with the
existing tagging behaviour pending product-owner review.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

NOISE_KEYWORDS = ("discount", "referral", "affiliate", "promo", "coupon", "code", "voucher")
PROMO_NAME_WORDS = ("FAVORITES", "FAVOURITES", "PICK", "CHOICE", "SPECIAL")

# Referrer name plus a percentage, e.g. ELIZA10, AMANDA20
_REFERRAL_CODE = re.compile(r"^[A-Z]{2,15}\d{1,4}$")
# Auto-generated codes, e.g. WH4WW9Z7, 95QNGP4Z
_GENERATED_CODE = re.compile(r"^[A-Z0-9]{6,10}$")
_LETTER_DIGIT_EDGE = re.compile(r"[A-Z]\d|\d[A-Z]")
# Hand-made named codes, e.g. AMANDASFAVORITES, AIKA
_NAMED_PROMO = re.compile(r"^[A-Z]{4,20}$")


class ItemSignals(NamedTuple):
    """Normalized inputs shared by every rule."""

    sku: str  # Uppercased, trimmed
    text: str  # Lowercased "name sku"
    price: Optional[Decimal]


class NoiseRule(NamedTuple):
    reason: str
    predicate: Callable[[ItemSignals], bool]


def _non_positive_price(s: ItemSignals) -> bool:
    return s.price is not None and s.price <= 0


def _has_keyword(s: ItemSignals) -> bool:
    return any(keyword in s.text for keyword in NOISE_KEYWORDS)


def _referral_code_shape(s: ItemSignals) -> bool:
    return bool(s.sku) and _REFERRAL_CODE.match(s.sku) is not None


def _generated_code_shape(s: ItemSignals) -> bool:
    if not s.sku or not _GENERATED_CODE.match(s.sku):
        return False
    has_letter = any(c.isalpha() for c in s.sku)
    has_digit = any(c.isdigit() for c in s.sku)
    return has_letter and has_digit and _LETTER_DIGIT_EDGE.search(s.sku) is not None


def _named_promo_shape(s: ItemSignals) -> bool:
    if not s.sku or not _NAMED_PROMO.match(s.sku):
        return False
    if any(word in s.sku for word in PROMO_NAME_WORDS):
        return True
    return 4 <= len(s.sku) <= 12


NOISE_RULES: tuple[NoiseRule, ...] = (
    NoiseRule("non_positive_price", _non_positive_price),
    NoiseRule("keyword", _has_keyword),
    NoiseRule("referral_code_shape", _referral_code_shape),
    NoiseRule("generated_code_shape", _generated_code_shape),
    NoiseRule("named_promo_shape", _named_promo_shape),
)


def classify(sku: Any, name: Any, price: Any = None) -> Optional[str]:
    """Return the reason a line item is noise, or None for a real product.

    Args:
        sku: Line item SKU (may be None or empty)
        name: Display name (may be None)
        price: Unit price; None, or a value that does not parse, skips the price rule

    Returns:
        Reason of the first matching rule, e.g. "non_positive_price"
    """
    signals = _signals(sku, name, price)
    for rule in NOISE_RULES:
        if rule.predicate(signals):
            return rule.reason
    return None


def is_noise_item(sku: Any, name: Any, price: Any = None) -> bool:
    """True when the line item is a discount, referral, gift or other non-product line."""
    return classify(sku, name, price) is not None


def _signals(sku: Any, name: Any, price: Any) -> ItemSignals:
    sku_text = "" if sku is None else str(sku)
    name_text = "" if name is None else str(name)
    return ItemSignals(
        sku=sku_text.strip().upper(),
        text=f"{name_text} {sku_text}".lower(),
        price=_to_decimal(price),
    )


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if result.is_nan():
        return None
    return result
