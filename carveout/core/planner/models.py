"""Strangler migration plan models."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class StepType(str, Enum):
    SETUP_INFRASTRUCTURE = "SETUP_INFRASTRUCTURE"
    DEPLOY_SERVICE = "DEPLOY_SERVICE"
    CONFIGURE_GATEWAY = "CONFIGURE_GATEWAY"
    MIGRATE_DATA = "MIGRATE_DATA"
    UPDATE_CLIENTS = "UPDATE_CLIENTS"
    VALIDATE = "VALIDATE"
    ROLLBACK = "ROLLBACK"


@dataclass(frozen=True)
class MigrationStep:
    """One ordered, reversible step for one candidate.

    ``key`` is ``<candidate>:<step type>``; ``dependencies`` name the keys
    that must complete first.
    """

    description: str
    type: StepType
    candidate: str
    dependencies: Tuple[str, ...] = ()
    rollback_steps: Tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.candidate}:{self.type.value}"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "description": self.description,
            "type": self.type.value,
            "service": self.candidate,
            "dependencies": list(self.dependencies),
            "rollbackSteps": list(self.rollback_steps),
        }


@dataclass(frozen=True)
class ValidationStrategy:
    test_types: Tuple[str, ...]
    metrics: Tuple[str, ...]
    success_threshold: float
    rollback_triggers: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "testTypes": list(self.test_types),
            "metrics": list(self.metrics),
            "successThreshold": self.success_threshold,
            "rollbackTriggers": list(self.rollback_triggers),
        }


@dataclass(frozen=True)
class MigrationPhase:
    number: int
    description: str
    candidates: Tuple[str, ...]
    steps: Tuple[MigrationStep, ...]
    validation: ValidationStrategy

    def to_dict(self) -> dict:
        return {
            "phaseNumber": self.number,
            "description": self.description,
            "services": list(self.candidates),
            "steps": [s.to_dict() for s in self.steps],
            "validation": self.validation.to_dict(),
        }


@dataclass(frozen=True)
class RouteConfig:
    path: str
    destination: str
    weight: int = 100
    strip_prefix: bool = True
    headers: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "service": self.destination,
            "weight": self.weight,
            "stripPrefix": self.strip_prefix,
            "headers": list(self.headers),
        }


@dataclass(frozen=True)
class GatewayConfig:
    type: str
    routes: Tuple[RouteConfig, ...]
    enable_circuit_breaker: bool = True
    enable_rate_limiting: bool = True

    def weight_by_path(self) -> dict:
        totals = {}
        for route in self.routes:
            totals[route.path] = totals.get(route.path, 0) + route.weight
        return totals

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "routes": [r.to_dict() for r in self.routes],
            "enableCircuitBreaker": self.enable_circuit_breaker,
            "enableRateLimiting": self.enable_rate_limiting,
        }


@dataclass(frozen=True)
class DatabaseConfig:
    type: str
    version: str
    schemas: Tuple[str, ...] = ()
    tables: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "version": self.version,
            "schemas": list(self.schemas),
            "tables": list(self.tables),
        }


@dataclass(frozen=True)
class DataMigrationStrategy:
    type: str
    tools: Tuple[str, ...]
    source: Tuple[DatabaseConfig, ...]
    target: Tuple[DatabaseConfig, ...]
    enable_rollback: bool = True

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "tools": list(self.tools),
            "sourceConfigs": [d.to_dict() for d in self.source],
            "targetConfigs": [d.to_dict() for d in self.target],
            "enableRollback": self.enable_rollback,
        }


@dataclass(frozen=True)
class MigrationPlan:
    phases: Tuple[MigrationPhase, ...]
    gateway: GatewayConfig
    data_migration: DataMigrationStrategy

    def to_dict(self) -> dict:
        return {
            "phases": [p.to_dict() for p in self.phases],
            "gatewayConfig": self.gateway.to_dict(),
            "dataMigrationStrategy": self.data_migration.to_dict(),
        }
