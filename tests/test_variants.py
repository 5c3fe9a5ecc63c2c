"""Tests for variant generation, matching and key helpers."""

from dataclasses import dataclass, field
import re

import pytest

from catalog_hub.services.keys import (
    generate_slug,
    generated_variant_sku,
    linked_variant_sku,
    manual_variant_sku,
    normalize_attributes,
    normalized_options_key,
    slugify,
)
from catalog_hub.services.variants import (
    MatchType,
    cardinality,
    clean_options_definition,
    cross_product,
    match_staging_variant,
)


@dataclass
class MasterVariantStub:
    id: int
    internal_sku: str
    gtin: str | None = None
    options: dict[str, str] = field(default_factory=dict)


def test_cross_product_is_row_major() -> None:
    combos = cross_product({"Color": ["Red", "Blue"], "Size": ["S", "M"]})
    assert combos == [
        {"Color": "Red", "Size": "S"},
        {"Color": "Red", "Size": "M"},
        {"Color": "Blue", "Size": "S"},
        {"Color": "Blue", "Size": "M"},
    ]


def test_cross_product_of_empty_definition_is_single_empty_combination() -> None:
    assert cross_product({}) == [{}]
    assert cross_product(None) == [{}]


def test_clean_options_definition_drops_blanks_and_duplicates() -> None:
    cleaned = clean_options_definition({" Color ": ["Red", " Red ", "", None, "Blue"], "": ["x"], "Size": []})
    assert cleaned == {"Color": ["Red", "Blue"]}


def test_clean_options_definition_merges_keys_equal_after_trim() -> None:
    cleaned = clean_options_definition({"Color": ["Red"], " Color ": ["Blue", "Green", "Red"]})
    assert cleaned == {"Color": ["Red", "Blue", "Green"]}
    assert cardinality(cleaned) == 3


def test_cardinality() -> None:
    assert cardinality({}) == 1
    assert cardinality({"a": ["1", "2"], "b": ["1", "2", "3"]}) == 6
    assert cardinality({k: [str(i) for i in range(10)] for k in "abc"}) == 1000


def test_match_prefers_barcode_then_sku_then_options() -> None:
    masters = [
        MasterVariantStub(1, "SKU-1", gtin=None, options={"Color": "Red"}),
        MasterVariantStub(2, "SKU-2", gtin="0123"),
        MasterVariantStub(3, "SKU-3", gtin=None, options={"Color": "Blue"}),
    ]

    match = match_staging_variant(raw_barcode="0123", raw_sku="SKU-1", raw_options={"color": "red"}, master_variants=masters)
    assert (match.match_type, match.master_variant_id) == (MatchType.BARCODE_MATCH, 2)

    match = match_staging_variant(raw_barcode="9999", raw_sku="SKU-3", raw_options={"color": "red"}, master_variants=masters)
    assert (match.match_type, match.master_variant_id) == (MatchType.SKU_MATCH, 3)

    match = match_staging_variant(raw_barcode=None, raw_sku=None, raw_options={" COLOR ": "red "}, master_variants=masters)
    assert (match.match_type, match.master_variant_id) == (MatchType.OPTIONS_MATCH, 1)


def test_match_returns_none_without_signal() -> None:
    masters = [MasterVariantStub(1, "SKU-1", options={})]
    match = match_staging_variant(raw_barcode="", raw_sku="", raw_options={}, master_variants=masters)
    assert match.match_type == MatchType.NONE
    assert match.master_variant_id is None


def test_match_first_master_wins_ties() -> None:
    masters = [MasterVariantStub(5, "A", options={"Size": "M"}), MasterVariantStub(6, "B", options={"size": "m"})]
    match = match_staging_variant(raw_barcode=None, raw_sku=None, raw_options={"Size": "M"}, master_variants=masters)
    assert match.master_variant_id == 5


@pytest.mark.parametrize(
    "text,expected",
    [
        ("iPhone 16 Pro (256GB)", "iphone-16-pro-256gb"),
        ("  Hello,   World  ", "hello-world"),
        ("!!!", "product"),
        (None, "product"),
    ],
)
def test_slugify(text, expected) -> None:
    assert slugify(text) == expected


def test_generate_slug_appends_hex_suffix() -> None:
    slug = generate_slug("Classic Tee")
    assert re.fullmatch(r"classic-tee-[0-9a-f]{8}", slug)
    assert generate_slug("Classic Tee") != slug


def test_generated_variant_sku() -> None:
    assert re.fullmatch(r"tee-red-xl-[0-9a-f]{6}", generated_variant_sku("tee", ["Red", "XL"]))
    assert re.fullmatch(r"tee-[0-9a-f]{6}", generated_variant_sku("tee", []))


def test_link_and_manual_skus() -> None:
    assert linked_variant_sku(7, 42) == "LINK-7-42"
    assert re.fullmatch(r"MANUAL-7-[0-9a-f]{8}", manual_variant_sku(7))


def test_normalized_options_key() -> None:
    assert normalized_options_key({"Size": " M ", "Color": "Red"}) == "color=red|size=m"
    assert normalized_options_key({"": "x"}) == ""
    assert normalized_options_key(None) == ""


def test_normalize_attributes() -> None:
    assert normalize_attributes({" Color ": " Red ", "": "x", "Size": None}) == {"color": "red", "size": ""}
