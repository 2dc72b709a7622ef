# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 23 SEP 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the operation engine.
"""

from core.config.defaults import (
    QueueDefaults,
    TimeoutDefaults,
    OrchestrationDefaults,
    NotificationDefaults,
    StorageDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "QueueDefaults",
    "TimeoutDefaults",
    "OrchestrationDefaults",
    "NotificationDefaults",
    "StorageDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
