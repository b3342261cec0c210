"""Tests for the plan catalog."""

import dataclasses

import pytest

from wickops.core.config import Settings
from wickops.core.plans import DEFAULT_PLAN_CATALOG, build_plan_catalog


class TestPlanCatalog:
    def test_seat_limits(self):
        assert DEFAULT_PLAN_CATALOG.get("Personal").max_users == 1
        assert DEFAULT_PLAN_CATALOG.get("Department").max_users == 5
        assert DEFAULT_PLAN_CATALOG.get("Organization").max_users == 15

    def test_lookup_is_case_insensitive(self):
        assert DEFAULT_PLAN_CATALOG.get(" organization ").key == "Organization"
        assert DEFAULT_PLAN_CATALOG.get("enterprise") is None
        assert DEFAULT_PLAN_CATALOG.get(None) is None

    def test_initial_seat_limit(self):
        assert DEFAULT_PLAN_CATALOG.initial_seat_limit(is_personal=True) == 1
        assert DEFAULT_PLAN_CATALOG.initial_seat_limit(is_personal=False) == 5

    def test_price_lookup(self):
        catalog = build_plan_catalog(
            Settings(STRIPE_PRICE_DEPARTMENT_MONTHLY="price_dep_m", STRIPE_PRICE_PERSONAL_YEARLY="price_p_y")
        )
        assert catalog.plan_for_price("price_dep_m").key == "Department"
        assert catalog.plan_for_price("price_p_y").key == "Personal"
        assert catalog.plan_for_price("price_unknown") is None
        assert catalog.plan_for_price(None) is None

    def test_catalog_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_PLAN_CATALOG.default_plan = "Organization"
