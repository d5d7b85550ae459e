import random

import pytest

from rpos.domain.errors import ValidationError
from rpos.domain.sku import (
    GENERIC_PREFIX,
    RandomSkuPolicy,
    SequentialSkuPolicy,
    ensure_unique_sku,
    make_sku_policy,
    prefix_for_category,
)


def test_sequential_continues_from_highest_code():
    policy = SequentialSkuPolicy()

    assert policy.generate("Carnes", ["CAR-0001", "CAR-0002", "CAR-0003"]) == "CAR-0004"


def test_sequential_ignores_other_prefixes_and_gaps():
    policy = SequentialSkuPolicy()
    existing = ["CAR-0001", "CAR-0007", "LAC-0042", "CAR-XYZ", ""]

    assert policy.generate("Carnes", existing) == "CAR-0008"
    assert policy.generate("Lácteos", existing) == "LAC-0043"
    assert policy.generate("Frutas", existing) == "FRU-0001"


def test_unknown_category_falls_back_to_generic_prefix():
    assert prefix_for_category("Electrónica") == GENERIC_PREFIX
    assert prefix_for_category(None) == GENERIC_PREFIX
    assert SequentialSkuPolicy().generate("Electrónica", []) == "GEN-0001"


def test_every_known_category_has_its_prefix():
    expected = {
        "Carnes": "CAR", "Lácteos": "LAC", "Vegetales": "VEG", "Frutas": "FRU",
        "Higiene Personal": "PER", "Higiene del Hogar": "HOG", "Agua y Refrescos": "BEB",
        "Panadería": "PAN", "Abarrotes": "ABA",
    }
    for category, prefix in expected.items():
        assert prefix_for_category(category) == prefix


class ScriptedRandom(random.Random):
    def __init__(self, values):
        super().__init__(0)
        self.values = list(values)

    def randint(self, a, b):
        return self.values.pop(0)


def test_random_policy_redraws_on_collision():
    policy = RandomSkuPolicy(rng=ScriptedRandom([1234, 1234, 5678]))

    assert policy.generate("Frutas", ["fru-1234"]) == "FRU-5678"


def test_random_policy_gives_up_after_max_attempts():
    policy = RandomSkuPolicy(rng=ScriptedRandom([1111] * 3), max_attempts=3)

    with pytest.raises(ValidationError, match="Could not generate"):
        policy.generate("Frutas", ["FRU-1111"])


def test_random_policy_stays_in_range():
    policy = RandomSkuPolicy(rng=random.Random(42))
    for _ in range(50):
        sku = policy.generate("Abarrotes", [])
        assert sku.startswith("ABA-")
        assert 1000 <= int(sku[4:]) <= 9999


def test_uniqueness_check_is_case_insensitive():
    with pytest.raises(ValidationError, match="SKU already exists: CAR-0001"):
        ensure_unique_sku(" car-0001 ", ["CAR-0001"])
    ensure_unique_sku("CAR-0002", ["CAR-0001"])


def test_make_sku_policy():
    assert isinstance(make_sku_policy("sequential"), SequentialSkuPolicy)
    assert isinstance(make_sku_policy("RANDOM"), RandomSkuPolicy)
    with pytest.raises(ValidationError):
        make_sku_policy("uuid")
