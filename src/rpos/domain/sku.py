from __future__ import annotations

import random
from typing import Iterable, Protocol

from rpos.domain.errors import ValidationError

CATEGORY_PREFIXES: dict[str, str] = {
    "Carnes": "CAR",
    "Lácteos": "LAC",
    "Vegetales": "VEG",
    "Frutas": "FRU",
    "Higiene Personal": "PER",
    "Higiene del Hogar": "HOG",
    "Agua y Refrescos": "BEB",
    "Panadería": "PAN",
    "Abarrotes": "ABA",
}

PRODUCT_CATEGORIES: tuple[str, ...] = tuple(CATEGORY_PREFIXES)

GENERIC_PREFIX = "GEN"


def prefix_for_category(category: str | None) -> str:
    return CATEGORY_PREFIXES.get((category or "").strip(), GENERIC_PREFIX)


def normalize_sku(sku: str | None) -> str:
    return (sku or "").strip().upper()


def sku_suffix_number(sku: str, prefix: str) -> int | None:
    head = f"{prefix}-"
    if not sku.upper().startswith(head):
        return None
    tail = sku[len(head):]
    return int(tail) if tail.isascii() and tail.isdigit() else None


class SkuPolicy(Protocol):
    def generate(self, category: str | None, existing: Iterable[str]) -> str: ...


class SequentialSkuPolicy:
    """PREFIX-0001, PREFIX-0002, ... continuing from the highest code in use."""

    width = 4

    def generate(self, category: str | None, existing: Iterable[str]) -> str:
        prefix = prefix_for_category(category)
        numbers = [n for n in (sku_suffix_number(s, prefix) for s in existing if s) if n is not None]
        nxt = (max(numbers) if numbers else 0) + 1
        return f"{prefix}-{nxt:0{self.width}d}"


class RandomSkuPolicy:
    """PREFIX-NNNN with NNNN in [1000, 9999], redrawn while it collides."""

    low = 1000
    high = 9999

    def __init__(self, rng: random.Random | None = None, max_attempts: int = 50):
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def generate(self, category: str | None, existing: Iterable[str]) -> str:
        prefix = prefix_for_category(category)
        taken = {normalize_sku(s) for s in existing if s}
        for _ in range(self.max_attempts):
            candidate = f"{prefix}-{self.rng.randint(self.low, self.high)}"
            if candidate not in taken:
                return candidate
        raise ValidationError(f"Could not generate a free SKU for prefix {prefix}.")


def make_sku_policy(name: str) -> SkuPolicy:
    key = (name or "").strip().lower()
    if key == "sequential":
        return SequentialSkuPolicy()
    if key == "random":
        return RandomSkuPolicy()
    raise ValidationError(f"Unknown SKU policy: {name!r}")


def ensure_unique_sku(sku: str, existing: Iterable[str]) -> None:
    wanted = normalize_sku(sku)
    if not wanted:
        raise ValidationError("SKU is required.")
    if any(normalize_sku(s) == wanted for s in existing):
        raise ValidationError(f"SKU already exists: {wanted}")
