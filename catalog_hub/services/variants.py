"""Variant generation and matching.

- `cross_product`: enumerate every combination of an options definition
- `match_staging_variant`: deterministic barcode -> SKU -> options heuristic
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
import itertools
from typing import Any, Protocol

from catalog_hub.services.keys import normalized_options_key

# Upper bound on generated variants per product
MAX_VARIANT_COMBINATIONS = 500


class MatchType(str, Enum):
    BARCODE_MATCH = "BARCODE_MATCH"
    SKU_MATCH = "SKU_MATCH"
    OPTIONS_MATCH = "OPTIONS_MATCH"
    NONE = "NONE"


class MasterVariantLike(Protocol):
    id: int
    internal_sku: str
    gtin: str | None
    options: dict[str, str]


@dataclass(frozen=True)
class VariantMatch:
    match_type: MatchType
    master_variant_id: int | None = None


def clean_options_definition(definition: dict[str, Any] | None) -> dict[str, list[str]]:
    """Normalize an options definition for generation.

    Keys are trimmed (empty keys skipped) and keys that trim to the same name
    share one value list. Values are trimmed with blanks and duplicates dropped,
    preserving order. Keys left without values are skipped.
    """
    cleaned: dict[str, list[str]] = {}
    for raw_key, raw_values in (definition or {}).items():
        key = str(raw_key).strip()
        if not key:
            continue
        if isinstance(raw_values, (str, bytes)) or not isinstance(raw_values, Sequence):
            raw_values = [raw_values]
        values = cleaned.get(key, [])
        for raw in raw_values:
            if raw is None:
                continue
            value = str(raw).strip()
            if value and value not in values:
                values.append(value)
        if values:
            cleaned[key] = values
    return cleaned


def cardinality(definition: dict[str, list[str]]) -> int:
    """Number of combinations `cross_product` would yield (1 for an empty definition)."""
    total = 1
    for values in definition.values():
        total *= len(values)
    return total


def cross_product(definition: dict[str, Any] | None) -> list[dict[str, str]]:
    """Cartesian enumeration of an options definition.

    Row-major: the first key varies slowest. An empty definition yields a
    single empty combination.

    Example:
        {"Color": ["Red", "Blue"], "Size": ["S", "M"]} ->
        [{Red,S}, {Red,M}, {Blue,S}, {Blue,M}]
    """
    cleaned = clean_options_definition(definition)
    keys = list(cleaned)
    return [dict(zip(keys, combo)) for combo in itertools.product(*(cleaned[k] for k in keys))]


def match_staging_variant(
    *,
    raw_barcode: str | None,
    raw_sku: str | None,
    raw_options: dict[str, Any] | None,
    master_variants: Sequence[MasterVariantLike],
) -> VariantMatch:
    """Suggest the master variant a staging variant corresponds to.

    Order: barcode equals gtin, then SKU equals internal SKU, then equal
    non-empty normalized options keys. The first master variant in the given
    order wins within each rule.
    """
    barcode = (raw_barcode or "").strip()
    if barcode:
        for mv in master_variants:
            if mv.gtin and mv.gtin.strip() == barcode:
                return VariantMatch(MatchType.BARCODE_MATCH, mv.id)

    sku = (raw_sku or "").strip()
    if sku:
        for mv in master_variants:
            if mv.internal_sku and mv.internal_sku.strip() == sku:
                return VariantMatch(MatchType.SKU_MATCH, mv.id)

    staging_key = normalized_options_key(raw_options)
    if staging_key:
        for mv in master_variants:
            if normalized_options_key(mv.options) == staging_key:
                return VariantMatch(MatchType.OPTIONS_MATCH, mv.id)

    return VariantMatch(MatchType.NONE)
