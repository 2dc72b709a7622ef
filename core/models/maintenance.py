# ============================================================================
# MAINTENANCE POLICY MODEL
# ============================================================================
# STATUS: Core model - Maintenance window rule set
# PURPOSE: Describe when disruptive per-runtime actions may run
# CREATED: 22 SEP 2026
# EXPORTS: MaintenancePolicy, MaintenancePolicyRule, MaintenancePolicyMatch,
#          MaintenancePolicyEntry, MAINTENANCE_WINDOW_FORMAT
# DEPENDENCIES: pydantic
# ============================================================================
"""
Maintenance Policy Model

Loaded from the policy document on every orchestration pass, never mutated.

Document format (camelCase keys are accepted as well):

    {
      "rules": [
        {
          "match": {"plan": "azure", "region": "europe.*"},
          "days": ["Sat", "Sun"],
          "timeBegin": "010000+0000",
          "timeEnd": "050000+0000"
        }
      ],
      "default": {"days": ["Mon", "Wed"], "timeBegin": "020000+0000", "timeEnd": "040000+0000"}
    }
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# HHMMSS followed by a UTC offset, e.g. 020000+0000
MAINTENANCE_WINDOW_FORMAT = "%H%M%S%z"


class MaintenancePolicyMatch(BaseModel):
    """Optional patterns; an empty field matches any runtime."""
    model_config = ConfigDict(populate_by_name=True)

    plan: str = ""
    global_account_id: str = Field(default="", alias="globalAccountID")
    region: str = ""


class MaintenancePolicyEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days: List[str] = Field(default_factory=list)
    time_begin: str = Field(default="", alias="timeBegin")
    time_end: str = Field(default="", alias="timeEnd")


class MaintenancePolicyRule(MaintenancePolicyEntry):
    match: MaintenancePolicyMatch = Field(default_factory=MaintenancePolicyMatch)


class MaintenancePolicy(BaseModel):
    rules: List[MaintenancePolicyRule] = Field(default_factory=list)
    default: Optional[MaintenancePolicyEntry] = None

    def is_empty(self) -> bool:
        return not self.rules and self.default is None


__all__ = [
    "MAINTENANCE_WINDOW_FORMAT",
    "MaintenancePolicyMatch",
    "MaintenancePolicyEntry",
    "MaintenancePolicyRule",
    "MaintenancePolicy",
]
