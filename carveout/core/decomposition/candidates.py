"""Candidate Synthesizer - one microservice candidate per bounded context.

Every context is judged concurrently with ``microservice-candidate-design``.
A failed context fails only its own candidate: the batch always runs to
completion and the failures are reported together in a
PartialCandidateFailure.
"""

import json
import logging
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from ..errors import PartialCandidateFailure
from ..oracle import Judgment, JudgmentRequest, MicroserviceResponseSchema, SemanticOracle
from ..oracle.schemas import MicroserviceSchema
from .models import BoundedContext, MicroserviceCandidate, slugify

logger = logging.getLogger(__name__)

TEMPLATE_ID = "microservice-candidate-design"
COMMAND_TAG = "COMMAND"


def build_candidate(context: BoundedContext, descriptor: MicroserviceSchema) -> MicroserviceCandidate:
    """Shape a validated descriptor into a candidate.

    Interactions tagged exactly ``COMMAND`` are commands; every other tag
    (or none) is a query. A name tagged both ways is a command.
    """
    name = descriptor.name.strip()
    apis = frozenset(api.path.strip() for api in descriptor.apis if api.path.strip())
    commands = frozenset(i.name for i in descriptor.interactions if i.type == COMMAND_TAG)
    queries = frozenset(i.name for i in descriptor.interactions) - commands

    required: List[str] = []
    for dep in descriptor.dependencies:
        dep = dep.strip()
        if dep and dep != name and dep not in required:
            required.append(dep)

    return MicroserviceCandidate(
        name=name,
        bounded_context=context,
        apis=apis,
        commands=commands,
        queries=queries,
        required_services=tuple(required),
    )


def _name_segments(context: BoundedContext) -> List[str]:
    return [part for part in context.name.split(".") if part]


def _structural_base(context: BoundedContext, depth: int) -> str:
    return slugify("-".join(_name_segments(context)[-depth:])) or "context"


def structural_candidate(context: BoundedContext, depth: int = 1) -> MicroserviceCandidate:
    """Candidate derived from the context alone, for offline runs.

    Named after the last ``depth`` segments of the context name; one REST
    path plus a create command and a get query per aggregate root.
    """
    base = _structural_base(context, depth)
    roots = sorted(ref.name for ref in context.aggregate_roots)
    apis = frozenset(f"/api/{slugify(r)}" for r in roots) or frozenset({f"/api/{base}"})
    return MicroserviceCandidate(
        name=f"{base}-service",
        bounded_context=context,
        apis=apis,
        commands=frozenset(f"create{r}" for r in roots),
        queries=frozenset(f"get{r}" for r in roots),
    )


def structural_candidates(contexts: Sequence[BoundedContext]) -> List[MicroserviceCandidate]:
    """Structural candidates with distinct names.

    Each name starts from the last segment of its context name; colliding
    names take one more parent segment until they differ or run out
    (``com.shop.orders.model`` → ``orders-model-service``).
    """
    contexts = list(contexts)
    depths = [1] * len(contexts)
    while True:
        bases = [_structural_base(ctx, d) for ctx, d in zip(contexts, depths)]
        counts = Counter(bases)
        grow = [
            i for i, base in enumerate(bases)
            if counts[base] > 1 and depths[i] < len(_name_segments(contexts[i]))
        ]
        if not grow:
            break
        for i in grow:
            depths[i] += 1
    return [structural_candidate(ctx, d) for ctx, d in zip(contexts, depths)]


class CandidateSynthesizer:
    """Produces MicroserviceCandidates from bounded contexts."""

    def __init__(self, oracle: Optional[SemanticOracle] = None):
        self.oracle = oracle

    async def generate(
        self,
        contexts: Sequence[BoundedContext],
        offline: bool = False,
    ) -> List[MicroserviceCandidate]:
        """Generate one candidate per context, in context order.

        Raises:
            PartialCandidateFailure: One or more contexts failed; carries the
                candidates that succeeded and (context, reason) for each failure
        """
        contexts = list(contexts)
        if offline or self.oracle is None or not self.oracle.available:
            logger.info(f"Generating {len(contexts)} structural candidate(s)")
            outcomes = [(ctx, c, None) for ctx, c in zip(contexts, structural_candidates(contexts))]
        else:
            outcomes = []
            for ctx, judgment in await self.generate_outcomes(contexts):
                if judgment.ok:
                    outcomes.append((ctx, build_candidate(ctx, judgment.value.microservice), None))
                else:
                    outcomes.append((ctx, None, judgment.reason))

        succeeded: List[MicroserviceCandidate] = []
        failed: List[Tuple[str, str]] = []
        names = set()
        for ctx, candidate, reason in outcomes:
            if candidate is None:
                failed.append((ctx.name, reason))
            elif candidate.name in names:
                failed.append((ctx.name, f"duplicate candidate name '{candidate.name}'"))
            else:
                names.add(candidate.name)
                succeeded.append(candidate)

        if failed:
            for ctx_name, reason in failed:
                logger.warning(f"Candidate synthesis failed for '{ctx_name}': {reason}")
            raise PartialCandidateFailure(succeeded, failed)

        logger.info(f"Generated {len(succeeded)} candidate(s)")
        return succeeded

    async def generate_outcomes(self, contexts: Sequence[BoundedContext]) -> List[Tuple[BoundedContext, Judgment]]:
        """Judge every context concurrently; one (context, Judgment) per context."""
        requests = [
            JudgmentRequest(TEMPLATE_ID, self._variables(ctx, contexts), MicroserviceResponseSchema)
            for ctx in contexts
        ]
        judgments = await self.oracle.judge_many(requests)
        return list(zip(contexts, judgments))

    @staticmethod
    def _variables(context: BoundedContext, contexts: Sequence[BoundedContext]) -> dict:
        others = [
            {"name": c.name, "description": c.description, "aggregateRoots": c.to_dict()["aggregateRoots"]}
            for c in contexts
            if c.name != context.name
        ]
        return {
            "boundedContext": json.dumps(context.to_dict(), indent=2),
            "otherContexts": json.dumps(others, indent=2) if others else "(none)",
        }
