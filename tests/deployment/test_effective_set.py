"""Tests for effective set calculation."""

import pytest

from src.wlan.deployment.domain.entities import (
    DeploymentMode,
    DeviceProfile,
    SiteDeploymentConfig,
    SiteId,
)
from src.wlan.deployment.use_cases import EffectiveSetCalculator


def profiles(site: str, *ids: str) -> list[DeviceProfile]:
    return [DeviceProfile(id=i, name=f"Profile {i}", site_id=SiteId(site), device_group_id="g") for i in ids]


@pytest.fixture
def calculator():
    return EffectiveSetCalculator()


class TestValidation:
    def test_include_only_requires_profiles(self, calculator):
        config = SiteDeploymentConfig(site_id=SiteId("s1"), mode=DeploymentMode.INCLUDE_ONLY)
        result = calculator.validate_site_assignment(config)
        assert not result.is_valid
        assert "INCLUDE_ONLY" in result.errors[0]
        assert result.errors[0].startswith("Site s1:")

    def test_error_names_the_site(self, calculator):
        config = SiteDeploymentConfig(
            site_id=SiteId("s1"), site_name="Warehouse", mode=DeploymentMode.INCLUDE_ONLY
        )
        result = calculator.validate_site_assignment(config)
        assert result.errors[0].startswith("Site Warehouse:")

    def test_exclude_some_may_exclude_nothing(self, calculator):
        config = SiteDeploymentConfig(site_id=SiteId("s1"), mode=DeploymentMode.EXCLUDE_SOME)
        assert calculator.validate_site_assignment(config).is_valid

    def test_blank_site_id(self, calculator):
        result = calculator.validate_site_assignment(SiteDeploymentConfig(site_id=SiteId(" ")))
        assert not result.is_valid

    def test_unknown_profile_ids_are_allowed(self, calculator):
        config = SiteDeploymentConfig(
            site_id=SiteId("s1"),
            mode=DeploymentMode.INCLUDE_ONLY,
            included_profiles=["not-discovered-yet"],
        )
        assert calculator.validate_site_assignment(config).is_valid


class TestCalculateEffectiveSet:
    def test_all_profiles(self, calculator):
        config = SiteDeploymentConfig(site_id=SiteId("s1"))
        result = calculator.calculate_effective_set(config, profiles("s1", "a", "b", "c"))
        assert [p.id for p in result.selected_profiles] == ["a", "b", "c"]
        assert result.excluded_profiles == []

    def test_include_only(self, calculator):
        config = SiteDeploymentConfig(
            site_id=SiteId("s1"),
            mode=DeploymentMode.INCLUDE_ONLY,
            included_profiles=["b", "ghost"],
        )
        result = calculator.calculate_effective_set(config, profiles("s1", "a", "b", "c"))
        assert [p.id for p in result.selected_profiles] == ["b"]
        assert [p.id for p in result.excluded_profiles] == ["a", "c"]

    def test_exclude_some(self, calculator):
        config = SiteDeploymentConfig(
            site_id=SiteId("s1"),
            mode=DeploymentMode.EXCLUDE_SOME,
            excluded_profiles=["a"],
        )
        result = calculator.calculate_effective_set(config, profiles("s1", "a", "b"))
        assert [p.id for p in result.selected_profiles] == ["b"]
        assert [p.id for p in result.excluded_profiles] == ["a"]

    def test_selected_is_subset_of_discovered(self, calculator):
        discovered = profiles("s1", "a", "b")
        config = SiteDeploymentConfig(
            site_id=SiteId("s1"),
            mode=DeploymentMode.INCLUDE_ONLY,
            included_profiles=["x", "y"],
        )
        result = calculator.calculate_effective_set(config, discovered)
        assert result.selected_profiles == []
        assert len(result.all_profiles) == 2

    def test_multiple_sets_use_site_profiles(self, calculator):
        configs = [SiteDeploymentConfig(site_id=SiteId("s1")), SiteDeploymentConfig(site_id=SiteId("s2"))]
        sets = calculator.calculate_multiple_effective_sets(
            configs, {SiteId("s1"): profiles("s1", "a")}
        )
        assert [len(s.selected_profiles) for s in sets] == [1, 0]


class TestMerge:
    def test_deduplicates_by_id(self, calculator):
        shared = profiles("s1", "a", "b")
        sets = [
            calculator.calculate_effective_set(SiteDeploymentConfig(site_id=SiteId("s1")), shared),
            calculator.calculate_effective_set(
                SiteDeploymentConfig(site_id=SiteId("s2")),
                profiles("s2", "b", "c"),
            ),
        ]
        assert [p.id for p in calculator.merge_effective_sets(sets)] == ["a", "b", "c"]

    def test_include_wins_over_exclude(self, calculator):
        sets = [
            calculator.calculate_effective_set(
                SiteDeploymentConfig(
                    site_id=SiteId("s1"),
                    mode=DeploymentMode.EXCLUDE_SOME,
                    excluded_profiles=["shared"],
                ),
                profiles("s1", "shared", "a"),
            ),
            calculator.calculate_effective_set(
                SiteDeploymentConfig(
                    site_id=SiteId("s2"),
                    mode=DeploymentMode.INCLUDE_ONLY,
                    included_profiles=["shared"],
                ),
                profiles("s2", "shared"),
            ),
        ]
        merged = calculator.merge_effective_sets(sets)
        assert {p.id for p in merged} == {"a", "shared"}

    def test_merge_independent_of_input_order(self, calculator):
        s1 = calculator.calculate_effective_set(
            SiteDeploymentConfig(site_id=SiteId("s1")), profiles("s1", "x", "y")
        )
        s2 = calculator.calculate_effective_set(
            SiteDeploymentConfig(site_id=SiteId("s2")), profiles("s2", "y", "z")
        )
        forward = calculator.merge_effective_sets([s1, s2])
        backward = calculator.merge_effective_sets([s2, s1])
        assert [(p.id, p.site_id) for p in forward] == [(p.id, p.site_id) for p in backward]
        assert next(p for p in forward if p.id == "y").site_id == "s1"
