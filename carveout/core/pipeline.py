"""Modernization pipeline: structural model → contexts → candidates → plan → refactor.

Wires the stages together for the CLI and for library callers. Per-unit
failures (skipped files, failed contexts, failed file moves) are collected
into the stage's report; planning invariant violations propagate.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .decomposition import BoundedContext, CandidateSynthesizer, ContextSynthesizer, MicroserviceCandidate
from .errors import OracleUnavailable, PartialCandidateFailure
from .oracle import SemanticOracle
from .planner import MigrationPlan, StranglerPlanner
from .refactor import RefactorConfig, RefactorOrchestrator, RefactorResult
from .structure import StructuralModel, StructuralModelBuilder

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class AnalysisReport:
    """Output of the decomposition stages for one source tree."""

    model: StructuralModel
    contexts: Tuple[BoundedContext, ...]
    candidates: Tuple[MicroserviceCandidate, ...]
    failed_contexts: Tuple[Tuple[str, str], ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "summary": {
                "packages": len(self.model.packages),
                "classes": len(self.model.classes),
                "dependencies": len(self.model.dependencies),
                "skippedFiles": len(self.model.warnings),
                "boundedContexts": len(self.contexts),
                "candidates": len(self.candidates),
            },
            "boundedContexts": [c.to_dict() for c in self.contexts],
            "candidates": [c.to_dict() for c in self.candidates],
            "failedContexts": [{"context": name, "reason": reason} for name, reason in self.failed_contexts],
            "warnings": [str(w) for w in self.model.warnings] + list(self.warnings),
        }


def order_candidates(candidates: Sequence[MicroserviceCandidate]) -> List[MicroserviceCandidate]:
    """Stable dependency-first ordering.

    Candidates whose dependencies are all placed keep their relative input
    order. Cycles and unknown dependencies are left in input order for the
    planner to reject.
    """
    remaining = list(candidates)
    names = {c.name for c in remaining}
    placed: List[MicroserviceCandidate] = []
    done = set()
    while remaining:
        ready = next(
            (c for c in remaining if all(d in done or d not in names for d in c.required_services)),
            None,
        )
        if ready is None:
            placed.extend(remaining)
            break
        remaining.remove(ready)
        placed.append(ready)
        done.add(ready.name)
    return placed


class ModernizationPipeline:
    """End-to-end decomposition and planning.

    Args:
        oracle: Semantic oracle; None or unconfigured means structural fallbacks
        planner: Migration planner (default: from configuration)
        refactor_config: Refactor settings (default: from configuration)
        offline: Force structural fallbacks even when an oracle is configured
    """

    def __init__(
        self,
        oracle: Optional[SemanticOracle] = None,
        planner: Optional[StranglerPlanner] = None,
        refactor_config: Optional[RefactorConfig] = None,
        offline: bool = False,
    ):
        self.oracle = oracle
        self.planner = planner or StranglerPlanner.from_config()
        self.refactor_config = refactor_config or RefactorConfig.from_config()
        self.offline = offline
        self.builder = StructuralModelBuilder()

    @classmethod
    def from_config(cls, offline: bool = False) -> "ModernizationPipeline":
        oracle = None if offline else SemanticOracle.from_config()
        return cls(oracle=oracle, offline=offline)

    @property
    def uses_oracle(self) -> bool:
        return not self.offline and self.oracle is not None and self.oracle.available

    async def analyze(self, source_root: PathLike) -> AnalysisReport:
        """Build the structural model, then contexts and candidates."""
        model = self.builder.build(source_root)
        logger.info(
            f"Structural model: {len(model.classes)} classes in {len(model.packages)} packages, "
            f"{len(model.dependencies)} edges, {len(model.warnings)} skipped"
        )

        synthesizer = ContextSynthesizer(model, self.oracle)
        contexts = await synthesizer.identify(offline=not self.uses_oracle)

        failed: List[Tuple[str, str]] = []
        try:
            candidates = await CandidateSynthesizer(self.oracle).generate(contexts, offline=not self.uses_oracle)
        except PartialCandidateFailure as e:
            candidates = e.succeeded
            failed = e.failed

        return AnalysisReport(
            model=model,
            contexts=tuple(contexts),
            candidates=tuple(order_candidates(candidates)),
            failed_contexts=tuple(failed),
            warnings=tuple(synthesizer.warnings),
        )

    async def plan(self, source_root: PathLike) -> Tuple[AnalysisReport, MigrationPlan]:
        """Analyze, then plan the candidates that succeeded.

        Raises:
            UnsatisfiedDependencyOrder, InvalidPlanConfiguration: No plan produced
        """
        report = await self.analyze(source_root)
        return report, self.planner.plan(report.candidates)

    async def refactor(
        self,
        source_root: PathLike,
        target_root: PathLike,
        candidate_names: Optional[Sequence[str]] = None,
    ) -> Dict[str, RefactorResult]:
        """Plan, then move each planned candidate's files under ``target_root/<candidate>``.

        Candidates are processed one at a time in plan order.

        Raises:
            OracleUnavailable: Refactoring needs an oracle
        """
        if not self.uses_oracle:
            raise OracleUnavailable("Refactoring requires a configured oracle", template_id="refactor-class")

        report, plan = await self.plan(source_root)
        by_name = {c.name: c for c in report.candidates}
        wanted = set(candidate_names) if candidate_names else None
        if wanted:
            unknown = wanted - set(by_name)
            if unknown:
                raise ValueError(f"Unknown candidate(s): {sorted(unknown)}")

        orchestrator = RefactorOrchestrator(self.oracle, self.refactor_config)
        results: Dict[str, RefactorResult] = {}
        for phase in plan.phases:
            for name in phase.candidates:
                if wanted and name not in wanted:
                    continue
                results[name] = await orchestrator.run(source_root, by_name[name], Path(target_root) / name)
        return results
