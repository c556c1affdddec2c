"""Strangler fig migration planner.

Turns an ordered list of candidates into phases of canonical, reversible
steps plus one gateway and one data-migration strategy. The planner never
reorders candidates: it validates that the given order honours every
``required_services`` entry and refuses to return a plan otherwise.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from ..config import get_config_value
from ..decomposition import MicroserviceCandidate
from ..errors import InvalidPlanConfiguration, UnsatisfiedDependencyOrder
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

logger = logging.getLogger(__name__)

MONOLITH_DESTINATION = "monolith"

# (type, description, rollback steps) in execution order
CANONICAL_STEPS = (
    (StepType.SETUP_INFRASTRUCTURE, "Create microservice project structure", ("Delete project structure",)),
    (StepType.DEPLOY_SERVICE, "Move domain classes", ("Revert domain class migration",)),
    (StepType.CONFIGURE_GATEWAY, "Configure service endpoints", ("Remove service endpoints",)),
    (StepType.MIGRATE_DATA, "Migrate data", ("Rollback data migration",)),
    (StepType.UPDATE_CLIENTS, "Update client references", ("Revert client updates",)),
    (StepType.VALIDATE, "Validate migration", ()),
)

DEFAULT_VALIDATION = ValidationStrategy(
    test_types=("Integration", "Load", "Smoke"),
    metrics=("ResponseTime", "ErrorRate", "Throughput"),
    success_threshold=95,
    rollback_triggers=("ErrorRate > 5%", "ResponseTime > 2s"),
)

DEFAULT_DATA_MIGRATION = DataMigrationStrategy(
    type="change-data-capture",
    tools=("Debezium", "Apache Kafka"),
    source=(DatabaseConfig("MySQL", "8.0", ("public",), ("*",)),),
    target=(DatabaseConfig("PostgreSQL", "15", ("public",), ("*",)),),
    enable_rollback=True,
)


def check_validation_strategy(strategy: ValidationStrategy) -> ValidationStrategy:
    """Every field present and non-empty, threshold a percentage.

    Raises:
        InvalidPlanConfiguration: On any violation
    """
    for name in ("test_types", "metrics", "rollback_triggers"):
        if not getattr(strategy, name):
            raise InvalidPlanConfiguration(f"Validation strategy requires non-empty {name}")
    threshold = strategy.success_threshold
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise InvalidPlanConfiguration(f"Validation success_threshold must be a number, got {threshold!r}")
    if not 0 <= threshold <= 100:
        raise InvalidPlanConfiguration(f"Validation success_threshold must be within 0-100, got {threshold}")
    return strategy


def _database(cfg: Mapping) -> DatabaseConfig:
    return DatabaseConfig(
        type=str(cfg["type"]),
        version=str(cfg.get("version", "")),
        schemas=tuple(cfg.get("schemas") or ()),
        tables=tuple(cfg.get("tables") or ()),
    )


class StranglerPlanner:
    """Builds MigrationPlans.

    Args:
        validation: Phase validation policy (default: DEFAULT_VALIDATION)
        data_migration: Data migration strategy (default: change-data-capture)
        gateway_type: Routing type tag
        route_prefix: Prefix of each candidate's route path
        strip_prefix: Route prefix stripping flag
        rollout_weights: candidate name -> percent of traffic routed to it;
            the remainder stays on the monolith. Unlisted candidates get 100.
    """

    def __init__(
        self,
        validation: Optional[ValidationStrategy] = None,
        data_migration: Optional[DataMigrationStrategy] = None,
        gateway_type: str = "spring-cloud-gateway",
        route_prefix: str = "/api/",
        strip_prefix: bool = True,
        enable_circuit_breaker: bool = True,
        enable_rate_limiting: bool = True,
        rollout_weights: Optional[Mapping[str, int]] = None,
    ):
        self.validation = check_validation_strategy(validation or DEFAULT_VALIDATION)
        self.data_migration = data_migration or DEFAULT_DATA_MIGRATION
        self.gateway_type = gateway_type
        self.route_prefix = route_prefix if route_prefix.endswith("/") else route_prefix + "/"
        self.strip_prefix = strip_prefix
        self.enable_circuit_breaker = enable_circuit_breaker
        self.enable_rate_limiting = enable_rate_limiting
        self.rollout_weights = dict(rollout_weights or {})

    @classmethod
    def from_config(cls) -> "StranglerPlanner":
        """Build from the ``planner`` config section; missing keys take defaults."""
        v = get_config_value("planner", "validation", default={}) or {}
        validation = ValidationStrategy(
            test_types=tuple(v.get("test_types", DEFAULT_VALIDATION.test_types)),
            metrics=tuple(v.get("metrics", DEFAULT_VALIDATION.metrics)),
            success_threshold=v.get("success_threshold", DEFAULT_VALIDATION.success_threshold),
            rollback_triggers=tuple(v.get("rollback_triggers", DEFAULT_VALIDATION.rollback_triggers)),
        )

        d = get_config_value("planner", "data_migration", default={}) or {}
        data_migration = DataMigrationStrategy(
            type=d.get("type", DEFAULT_DATA_MIGRATION.type),
            tools=tuple(d.get("tools", DEFAULT_DATA_MIGRATION.tools)),
            source=tuple(_database(s) for s in d["source"]) if "source" in d else DEFAULT_DATA_MIGRATION.source,
            target=tuple(_database(t) for t in d["target"]) if "target" in d else DEFAULT_DATA_MIGRATION.target,
            enable_rollback=bool(d.get("enable_rollback", True)),
        )

        g = get_config_value("planner", "gateway", default={}) or {}
        return cls(
            validation=validation,
            data_migration=data_migration,
            gateway_type=g.get("type", "spring-cloud-gateway"),
            route_prefix=g.get("route_prefix", "/api/"),
            strip_prefix=bool(g.get("strip_prefix", True)),
            enable_circuit_breaker=bool(g.get("enable_circuit_breaker", True)),
            enable_rate_limiting=bool(g.get("enable_rate_limiting", True)),
            rollout_weights=g.get("rollout_weights") or {},
        )

    # ── Public API ────────────────────────────────────────────────────

    def plan(self, candidates: Sequence[MicroserviceCandidate]) -> MigrationPlan:
        """One phase per candidate, numbered in input order.

        Raises:
            UnsatisfiedDependencyOrder: A candidate requires one that is
                planned later or is not planned at all
            InvalidPlanConfiguration: Duplicate names or invalid gateway weights
        """
        return self.plan_batches([[c] for c in candidates])

    def plan_batches(self, batches: Sequence[Sequence[MicroserviceCandidate]]) -> MigrationPlan:
        """One phase per batch. Candidates in a batch may depend on each
        other as long as those dependencies are acyclic."""
        batches = [list(b) for b in batches]
        self._check_order(batches)

        phases = tuple(
            self._build_phase(number, batch)
            for number, batch in enumerate(batches, start=1)
        )
        candidates = [c for batch in batches for c in batch]
        plan = MigrationPlan(
            phases=phases,
            gateway=self._build_gateway(candidates),
            data_migration=self.data_migration,
        )
        logger.info(
            f"Migration plan: {len(phases)} phase(s), "
            f"{sum(len(p.steps) for p in phases)} step(s), "
            f"{len(plan.gateway.routes)} route(s)"
        )
        return plan

    # ── Validation ────────────────────────────────────────────────────

    def _check_order(self, batches: List[List[MicroserviceCandidate]]):
        phase_of: Dict[str, int] = {}
        for number, batch in enumerate(batches, start=1):
            if not batch:
                raise InvalidPlanConfiguration(f"Phase {number} has no candidates")
            for c in batch:
                if c.name in phase_of:
                    raise InvalidPlanConfiguration(
                        f"Candidate '{c.name}' planned twice (phases {phase_of[c.name]} and {number})"
                    )
                phase_of[c.name] = number

        for number, batch in enumerate(batches, start=1):
            for c in batch:
                for dep in c.required_services:
                    if dep not in phase_of:
                        raise UnsatisfiedDependencyOrder(number, c.name, dep, "not a candidate in this plan")
                    if phase_of[dep] > number:
                        raise UnsatisfiedDependencyOrder(
                            number, c.name, dep, f"first completed in phase {phase_of[dep]}"
                        )
            self._check_acyclic(number, batch)

    @staticmethod
    def _check_acyclic(number: int, batch: List[MicroserviceCandidate]):
        in_phase = {c.name: c for c in batch}
        state: Dict[str, int] = {}  # 1 = visiting, 2 = done

        def visit(name: str):
            state[name] = 1
            for dep in in_phase[name].required_services:
                if dep not in in_phase:
                    continue
                if state.get(dep) == 1:
                    raise UnsatisfiedDependencyOrder(number, name, dep, "cyclic dependency within phase")
                if dep not in state:
                    visit(dep)
            state[name] = 2

        for c in batch:
            if c.name not in state:
                visit(c.name)

    # ── Construction ──────────────────────────────────────────────────

    def _build_phase(self, number: int, batch: List[MicroserviceCandidate]) -> MigrationPhase:
        steps: List[MigrationStep] = []
        for candidate in batch:
            steps.extend(self._build_steps(candidate))
        names = tuple(c.name for c in batch)
        return MigrationPhase(
            number=number,
            description=f"Migrate {', '.join(names)}",
            candidates=names,
            steps=tuple(steps),
            validation=self.validation,
        )

    @staticmethod
    def _build_steps(candidate: MicroserviceCandidate) -> List[MigrationStep]:
        steps = []
        previous = tuple(f"{dep}:{StepType.VALIDATE.value}" for dep in candidate.required_services)
        for step_type, description, rollback in CANONICAL_STEPS:
            step = MigrationStep(
                description=description,
                type=step_type,
                candidate=candidate.name,
                dependencies=previous,
                rollback_steps=rollback,
            )
            steps.append(step)
            previous = (step.key,)
        return steps

    def _build_gateway(self, candidates: List[MicroserviceCandidate]) -> GatewayConfig:
        unknown = set(self.rollout_weights) - {c.name for c in candidates}
        if unknown:
            logger.warning(f"Rollout weights for unplanned candidates ignored: {sorted(unknown)}")

        routes: List[RouteConfig] = []
        for c in candidates:
            path = f"{self.route_prefix}{c.name.lower()}"
            weight = self.rollout_weights.get(c.name, 100)
            if isinstance(weight, bool) or not isinstance(weight, int) or not 0 <= weight <= 100:
                raise InvalidPlanConfiguration(f"Rollout weight for '{c.name}' must be an integer 0-100, got {weight!r}")
            routes.append(RouteConfig(path, c.name, weight, self.strip_prefix))
            if weight < 100:
                routes.append(RouteConfig(path, MONOLITH_DESTINATION, 100 - weight, self.strip_prefix))

        gateway = GatewayConfig(
            type=self.gateway_type,
            routes=tuple(routes),
            enable_circuit_breaker=self.enable_circuit_breaker,
            enable_rate_limiting=self.enable_rate_limiting,
        )
        for path, total in gateway.weight_by_path().items():
            if total > 100:
                raise InvalidPlanConfiguration(f"Route weights for '{path}' sum to {total} (> 100)")
        return gateway
