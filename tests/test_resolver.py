# ============================================================================
# RUNTIME RESOLVER TESTS
# ============================================================================
# STATUS: Tests - Target matching and policy documents
# PURPOSE: Verify include/exclude resolution and policy loading
# CREATED: 14 OCT 2026
# ============================================================================
"""
Runtime Resolver and Maintenance Policy Provider Tests

Run with:
    pytest tests/test_resolver.py -v
"""

import asyncio
import json

import pytest
from pydantic import ValidationError

from core.errors import FatalError
from core.models import Instance, MaintenancePolicy, RuntimeTarget, TargetSpec
from orchestrator.policy import FileMaintenancePolicyProvider, StaticMaintenancePolicyProvider
from orchestrator.resolver import StoreRuntimeResolver, target_matches
from repositories import create_memory_storage


def _instance(instance_id, **kwargs):
    kwargs.setdefault("runtime_id", f"rt-{instance_id}")
    return Instance(instance_id=instance_id, **kwargs)


INSTANCES = [
    _instance("i-3", plan_name="azure", region="westeurope", global_account_id="ga-1"),
    _instance("i-1", plan_name="aws", region="eu-central-1", global_account_id="ga-1"),
    _instance("i-2", plan_name="azure", region="eastus", global_account_id="ga-2", subaccount_id="sa-2"),
    _instance("i-4", plan_name="azure", region="westeurope", runtime_id=""),
]


def _resolve(targets):
    async def scenario():
        storage = create_memory_storage()
        for instance in INSTANCES:
            await storage.instances.upsert(instance)
        return await StoreRuntimeResolver(storage.instances).resolve(targets)

    return [runtime.instance_id for runtime in asyncio.run(scenario())]


class TestTargetMatches:

    def test_all(self):
        assert target_matches(RuntimeTarget(target="all"), INSTANCES[0])

    def test_unknown_target_keyword_rejected(self):
        with pytest.raises(ValidationError):
            RuntimeTarget(target="some")

    def test_every_set_field_must_match(self):
        target = RuntimeTarget(plan="azure", region="europe")
        assert target_matches(target, INSTANCES[0])
        assert not target_matches(target, INSTANCES[2])

    def test_plan_is_exact(self):
        assert not target_matches(RuntimeTarget(plan="azu"), INSTANCES[0])

    def test_region_is_a_pattern(self):
        assert target_matches(RuntimeTarget(region="^west"), INSTANCES[0])

    def test_empty_rule_matches_nothing(self):
        assert not target_matches(RuntimeTarget(), INSTANCES[0])

    def test_invalid_pattern_is_fatal(self):
        with pytest.raises(FatalError):
            target_matches(RuntimeTarget(global_account="("), INSTANCES[0])


class TestStoreRuntimeResolver:

    def test_all_sorted_without_unprovisioned(self):
        assert _resolve(TargetSpec(include=[RuntimeTarget(target="all")])) == ["i-1", "i-2", "i-3"]

    def test_include_any_rule(self):
        targets = TargetSpec(include=[RuntimeTarget(runtime_id="rt-i-1"), RuntimeTarget(subaccount="sa-2")])
        assert _resolve(targets) == ["i-1", "i-2"]

    def test_exclude_wins(self):
        targets = TargetSpec(
            include=[RuntimeTarget(plan="azure")],
            exclude=[RuntimeTarget(global_account="ga-2")],
        )
        assert _resolve(targets) == ["i-3"]

    def test_no_include_selects_nothing(self):
        assert _resolve(TargetSpec()) == []

    def test_runtime_descriptor(self):
        async def scenario():
            storage = create_memory_storage()
            await storage.instances.upsert(INSTANCES[0])
            return await StoreRuntimeResolver(storage.instances).resolve(
                TargetSpec(include=[RuntimeTarget(instance_id="i-3")])
            )

        (runtime,) = asyncio.run(scenario())
        assert runtime.runtime_id == "rt-i-3"
        assert runtime.plan == "azure"
        assert runtime.region == "westeurope"
        assert not runtime.has_window()


class TestPolicyProviders:

    def test_static_default_is_empty(self):
        assert asyncio.run(StaticMaintenancePolicyProvider().get_policy()).is_empty()

    def test_file_without_path_is_empty(self):
        assert asyncio.run(FileMaintenancePolicyProvider("").get_policy()).is_empty()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(
            "rules:\n"
            "  - match: {plan: azure}\n"
            "    days: [Sat]\n"
            "    timeBegin: '010000+0000'\n"
            "default:\n"
            "  days: [Mon]\n"
        )
        policy = asyncio.run(FileMaintenancePolicyProvider(path).get_policy())

        assert isinstance(policy, MaintenancePolicy)
        assert policy.rules[0].match.plan == "azure"
        assert policy.rules[0].time_begin == "010000+0000"
        assert policy.default.days == ["Mon"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"default": {"days": ["Wed"], "timeEnd": "040000+0000"}}))
        policy = asyncio.run(FileMaintenancePolicyProvider(str(path)).get_policy())

        assert policy.default.time_end == "040000+0000"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            asyncio.run(FileMaintenancePolicyProvider(tmp_path / "missing.yaml").get_policy())
