# Carveout Migration Planner - strangler fig phases, gateway routing,
# and data migration strategy

from .models import (
    DatabaseConfig,
    DataMigrationStrategy,
    GatewayConfig,
    MigrationPhase,
    MigrationPlan,
    MigrationStep,
    RouteConfig,
    StepType,
    ValidationStrategy,
)
from .strangler import (
    CANONICAL_STEPS,
    DEFAULT_DATA_MIGRATION,
    DEFAULT_VALIDATION,
    StranglerPlanner,
    check_validation_strategy,
)

__all__ = [
    "StranglerPlanner",
    "check_validation_strategy",
    "CANONICAL_STEPS",
    "DEFAULT_VALIDATION",
    "DEFAULT_DATA_MIGRATION",
    "MigrationPlan",
    "MigrationPhase",
    "MigrationStep",
    "StepType",
    "ValidationStrategy",
    "GatewayConfig",
    "RouteConfig",
    "DataMigrationStrategy",
    "DatabaseConfig",
]
