"""Slug and internal SKU generation.

Keys are deterministic apart from a short random hex suffix that keeps
generated slugs and SKUs unique across repeated titles.
"""

import re
from uuid import uuid4

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str | None, fallback: str = "product") -> str:
    """Kebab-case `text`: lower-case, runs of non-alphanumerics become '-'.

    Examples:
        "iPhone 16 Pro (256GB)" -> "iphone-16-pro-256gb"
        "!!!" -> "product"
    """
    slug = _NON_ALNUM.sub("-", (text or "").lower()).strip("-")
    return slug or fallback


def opaque_suffix(length: int) -> str:
    """Random lower-case hex string of `length` characters."""
    return uuid4().hex[:length]


def generate_slug(title: str) -> str:
    """Slug for a new master product: kebab title plus an 8-char suffix."""
    return f"{slugify(title)}-{opaque_suffix(8)}"


def generated_variant_sku(slug: str, values: list[str]) -> str:
    """SKU for a variant generated from an options definition.

    `<slug>-<kebab values>-<6 hex>`; a product without options gets
    `<slug>-<6 hex>`.
    """
    values_part = slugify("-".join(values), fallback="")
    if values_part:
        return f"{slug}-{values_part}-{opaque_suffix(6)}"
    return f"{slug}-{opaque_suffix(6)}"


def linked_variant_sku(staging_id: int, staging_variant_id: int) -> str:
    return f"LINK-{staging_id}-{staging_variant_id}"


def manual_variant_sku(staging_id: int) -> str:
    return f"MANUAL-{staging_id}-{opaque_suffix(8)}"


def normalized_options_key(options: dict[str, object] | None) -> str:
    """Canonical string for comparing option maps.

    Entries are sorted by key; key and value are trimmed and lower-cased and
    rendered as `key=value`, joined by '|'. Empty keys are ignored.

    Example:
        {"Size": " M ", "Color": "Red"} -> "color=red|size=m"
    """
    if not options:
        return ""
    parts: list[tuple[str, str]] = []
    for key, value in options.items():
        k = str(key).strip().lower()
        if not k:
            continue
        v = "" if value is None else str(value).strip().lower()
        parts.append((k, v))
    parts.sort()
    return "|".join(f"{k}={v}" for k, v in parts)


def normalize_attributes(options: dict[str, object] | None) -> dict[str, str]:
    """Lower-cased, trimmed copy of an options mapping."""
    out: dict[str, str] = {}
    for key, value in (options or {}).items():
        k = str(key).strip().lower()
        if k:
            out[k] = "" if value is None else str(value).strip().lower()
    return out
