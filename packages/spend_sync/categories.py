"""Canonical spending categories and the synonym table that feeds them.

Every category string that enters the system (statement categories, merchant
hints, onboarding spend-split keys) is folded into one of nine fixed labels
before aggregation. The mapping is a total function: unknown, empty or missing
input resolves to ``"Other"``.

Exports
-------
- ``STANDARD_CATEGORIES``: the nine labels, in display order.
- ``CATEGORY_SYNONYMS``: lower-case synonym -> label table (single source of
  truth; adding a synonym is a table edit).
- ``normalize_category(...)`` and ``is_standard_category(...)``.
- ``spend_split_to_shares(...)``: fold a user-declared spend split into
  per-label shares.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal, cast

from .logging_setup import get_logger

type StandardCategory = Literal[
    "Food & Dining",
    "Shopping & E-commerce",
    "Travel & Transport",
    "Bills & Utilities",
    "Entertainment & Subscriptions",
    "Health & Wellness",
    "Education",
    "Investments & Savings",
    "Other",
]

STANDARD_CATEGORIES: tuple[StandardCategory, ...] = (
    "Food & Dining",
    "Shopping & E-commerce",
    "Travel & Transport",
    "Bills & Utilities",
    "Entertainment & Subscriptions",
    "Health & Wellness",
    "Education",
    "Investments & Savings",
    "Other",
)

DEFAULT_CATEGORY: StandardCategory = "Other"

_STANDARD_SET: frozenset[str] = frozenset(STANDARD_CATEGORIES)

_logger = get_logger("spend_sync.categories")


# ---------------------------------------------------------------------------
# Synonym table
# ---------------------------------------------------------------------------

# Keys are already lower-cased and trimmed. Each label lists its "&", "and"
# and underscore spellings first, then singular/plural forms and abbreviations.
CATEGORY_SYNONYMS: Mapping[str, StandardCategory] = {
    # Food & Dining
    "food & dining": "Food & Dining",
    "food and dining": "Food & Dining",
    "food_and_dining": "Food & Dining",
    "food_dining": "Food & Dining",
    "food": "Food & Dining",
    "foods": "Food & Dining",
    "dining": "Food & Dining",
    "dining out": "Food & Dining",
    "food delivery": "Food & Dining",
    "restaurant": "Food & Dining",
    "restaurants": "Food & Dining",
    "grocery": "Food & Dining",
    "groceries": "Food & Dining",
    "f&b": "Food & Dining",
    # Shopping & E-commerce
    "shopping & e-commerce": "Shopping & E-commerce",
    "shopping and e-commerce": "Shopping & E-commerce",
    "shopping & ecommerce": "Shopping & E-commerce",
    "shopping and ecommerce": "Shopping & E-commerce",
    "shopping_and_ecommerce": "Shopping & E-commerce",
    "shopping_online": "Shopping & E-commerce",
    "shopping": "Shopping & E-commerce",
    "online shopping": "Shopping & E-commerce",
    "ecommerce": "Shopping & E-commerce",
    "e-commerce": "Shopping & E-commerce",
    "online": "Shopping & E-commerce",
    # Travel & Transport
    "travel & transport": "Travel & Transport",
    "travel and transport": "Travel & Transport",
    "travel_and_transport": "Travel & Transport",
    "travel": "Travel & Transport",
    "transport": "Travel & Transport",
    "transportation": "Travel & Transport",
    "fuel": "Travel & Transport",
    "cabs": "Travel & Transport",
    # Bills & Utilities
    "bills & utilities": "Bills & Utilities",
    "bills and utilities": "Bills & Utilities",
    "bills_and_utilities": "Bills & Utilities",
    "bills_utilities": "Bills & Utilities",
    "bills": "Bills & Utilities",
    "bill": "Bills & Utilities",
    "utilities": "Bills & Utilities",
    "utility": "Bills & Utilities",
    # Entertainment & Subscriptions
    "entertainment & subscriptions": "Entertainment & Subscriptions",
    "entertainment and subscriptions": "Entertainment & Subscriptions",
    "entertainment_and_subscriptions": "Entertainment & Subscriptions",
    "entertainment": "Entertainment & Subscriptions",
    "subscriptions": "Entertainment & Subscriptions",
    "subscription": "Entertainment & Subscriptions",
    "streaming": "Entertainment & Subscriptions",
    # Health & Wellness
    "health & wellness": "Health & Wellness",
    "health and wellness": "Health & Wellness",
    "health_and_wellness": "Health & Wellness",
    "health": "Health & Wellness",
    "wellness": "Health & Wellness",
    "healthcare": "Health & Wellness",
    "medical": "Health & Wellness",
    # Education
    "education": "Education",
    "edu": "Education",
    # Investments & Savings
    "investments & savings": "Investments & Savings",
    "investments and savings": "Investments & Savings",
    "investments_and_savings": "Investments & Savings",
    "investments": "Investments & Savings",
    "investment": "Investments & Savings",
    "savings": "Investments & Savings",
    "saving": "Investments & Savings",
    # Other
    "other": "Other",
    "others": "Other",
    "miscellaneous": "Other",
    "misc": "Other",
    "uncategorized": "Other",
}


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def normalize_category(category: str | None) -> StandardCategory:
    """Map ``category`` to one of :data:`STANDARD_CATEGORIES`.

    Lower-cases and trims the input, then looks it up in
    :data:`CATEGORY_SYNONYMS`. Missing, empty and unknown input resolves to
    ``"Other"``; this function never raises.
    """

    if not category:
        return DEFAULT_CATEGORY
    key = category.strip().lower()
    label = CATEGORY_SYNONYMS.get(key)
    if label is None:
        _logger.debug("categories:unmapped input=%r -> %s", category, DEFAULT_CATEGORY)
        return DEFAULT_CATEGORY
    return label


def is_standard_category(category: str) -> bool:
    """Return ``True`` when ``category`` is already a canonical label verbatim.

    Case-sensitive and whitespace-sensitive. Callers use it to skip
    re-normalization of values that were canonicalized earlier.
    """

    return category in _STANDARD_SET


def canonical_category(category: str | None) -> StandardCategory:
    """Return ``category`` unchanged when already canonical, else normalize it."""

    if category is not None and is_standard_category(category):
        return cast(StandardCategory, category)
    return normalize_category(category)


def spend_split_to_shares(split: Mapping[str, float]) -> dict[StandardCategory, float]:
    """Fold a spend split into per-label shares in ``[0, 1]``.

    ``split`` maps free-form category names to either fractions (``<= 1``) or
    percentages (``> 1``). Names are canonicalized and merged by summing.
    Every label is present in the result (``0.0`` when absent). When the raw
    total lands within ``(0.9, 1.1)`` the shares are rescaled to sum to exactly
    ``1.0`` to absorb rounding in user input.
    """

    shares: dict[StandardCategory, float] = dict.fromkeys(STANDARD_CATEGORIES, 0.0)

    total = sum(float(v) for v in split.values())
    if total > 0:
        for name, value in split.items():
            v = float(value)
            fraction = v if v <= 1 else v / 100
            label = canonical_category(name)
            shares[label] += fraction

    s = sum(shares.values())
    if 0.9 < s < 1.1:
        shares = {label: v / s for label, v in shares.items()}
    return shares


__all__ = [
    "StandardCategory",
    "STANDARD_CATEGORIES",
    "DEFAULT_CATEGORY",
    "CATEGORY_SYNONYMS",
    "normalize_category",
    "is_standard_category",
    "canonical_category",
    "spend_split_to_shares",
]
