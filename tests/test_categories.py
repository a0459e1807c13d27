import pytest

from spend_sync.categories import (
    CATEGORY_SYNONYMS,
    STANDARD_CATEGORIES,
    canonical_category,
    is_standard_category,
    normalize_category,
    spend_split_to_shares,
)


@pytest.mark.parametrize(
    "variants, expected",
    [
        (["food", "Food and Dining", "FOOD_AND_DINING", " food & dining ", "Dining"], "Food & Dining"),
        (["shopping", "E-Commerce", "ecommerce", "Shopping and E-commerce"], "Shopping & E-commerce"),
        (["Travel", "transport", "TRANSPORTATION", "travel_and_transport"], "Travel & Transport"),
        (["bills", "Utilities", "bills and utilities", "utility"], "Bills & Utilities"),
        (["subscriptions", "Entertainment", "entertainment_and_subscriptions"], "Entertainment & Subscriptions"),
        (["health", "Healthcare", "wellness", "health_and_wellness"], "Health & Wellness"),
        (["education", "EDU"], "Education"),
        (["investments", "Savings", "investments and savings"], "Investments & Savings"),
        (["misc", "Miscellaneous", "uncategorized", "other"], "Other"),
    ],
)
def test_synonyms_collapse_to_one_label(variants, expected):
    assert {normalize_category(v) for v in variants} == {expected}


@pytest.mark.parametrize("value", [None, "", "   ", "totally-unknown-xyz", "Groceries & more"])
def test_unknown_or_missing_input_is_other(value):
    assert normalize_category(value) == "Other"


def test_every_label_maps_to_itself_and_table_is_closed():
    for label in STANDARD_CATEGORIES:
        assert normalize_category(label) == label
    assert set(CATEGORY_SYNONYMS.values()) <= set(STANDARD_CATEGORIES)
    # Keys are stored pre-normalized so lookups after lower()/strip() hit them.
    assert all(k == k.strip().lower() for k in CATEGORY_SYNONYMS)


def test_is_standard_category_is_verbatim():
    assert is_standard_category("Food & Dining")
    assert not is_standard_category("food & dining")
    assert not is_standard_category(" Food & Dining")
    assert not is_standard_category("Food and Dining")


def test_canonical_category_short_circuits_standard_labels():
    assert canonical_category("Bills & Utilities") == "Bills & Utilities"
    assert canonical_category("bills") == "Bills & Utilities"
    assert canonical_category(None) == "Other"


def test_spend_split_percentages_become_shares():
    shares = spend_split_to_shares({"Online Shopping": 40, "Dining": 30, "Travel": 30})

    assert set(shares) == set(STANDARD_CATEGORIES)
    assert shares["Shopping & E-commerce"] == pytest.approx(0.4)
    assert shares["Food & Dining"] == pytest.approx(0.3)
    assert shares["Travel & Transport"] == pytest.approx(0.3)
    assert shares["Education"] == 0.0
    assert sum(shares.values()) == pytest.approx(1.0)


def test_spend_split_fractions_and_synonyms_merge():
    shares = spend_split_to_shares({"food": 0.25, "dining": 0.25, "bills": 0.5})

    assert shares["Food & Dining"] == pytest.approx(0.5)
    assert shares["Bills & Utilities"] == pytest.approx(0.5)


def test_spend_split_rescales_near_one_but_not_far_from_it():
    near = spend_split_to_shares({"food": 0.5, "travel": 0.45})
    assert sum(near.values()) == pytest.approx(1.0)

    far = spend_split_to_shares({"food": 0.2, "travel": 0.2})
    assert sum(far.values()) == pytest.approx(0.4)


def test_spend_split_empty_is_all_zero():
    shares = spend_split_to_shares({})
    assert shares == dict.fromkeys(STANDARD_CATEGORIES, 0.0)
