"""Context Synthesizer - groups structural classes into bounded contexts.

Two paths:
1. Oracle: the class list is judged with ``identify-bounded-contexts`` and the
   response is validated against the structural model. The oracle is
   advisory: names it invents are dropped, never trusted.
2. Package fallback: one context per package, roles assigned from
   annotations and naming conventions. Used when no oracle is configured
   or the run is offline.

Oracle failures surface as OracleFailure / MalformedJudgment; the
synthesizer never substitutes the fallback for a failed oracle.
"""

import json
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Set

from ..errors import MalformedJudgment
from ..oracle import BoundedContextListSchema, SemanticOracle
from ..oracle.schemas import BoundedContextSchema
from ..structure import ClassFact, ClassId, StructuralModel
from .models import ROLE_ORDER, BoundedContext, ClassRef, DomainEvent

logger = logging.getLogger(__name__)

TEMPLATE_ID = "identify-bounded-contexts"

REPOSITORY_ANNOTATIONS = {"Repository"}
SERVICE_ANNOTATIONS = {"Service", "Component", "Controller", "RestController"}
VALUE_OBJECT_ANNOTATIONS = {"Embeddable", "Value"}
REPOSITORY_SUFFIXES = ("Repository", "Dao")
SERVICE_SUFFIXES = ("Service", "Controller", "Manager", "Handler")
EVENT_SUFFIX = "Event"
DEFAULT_PACKAGE_CONTEXT = "default"


def _ref(fact: ClassFact) -> ClassRef:
    return ClassRef(qualified_name=fact.qualified_name, name=fact.name, id=fact.id)


class ContextSynthesizer:
    """Builds BoundedContexts for one structural model.

    Args:
        model: The structural model the contexts are validated against
        oracle: Semantic oracle; None (or an unconfigured oracle) means
            the package fallback is used
    """

    def __init__(self, model: StructuralModel, oracle: Optional[SemanticOracle] = None):
        self.model = model
        self.oracle = oracle
        self.warnings: List[str] = []

    async def identify(
        self,
        classes: Optional[Sequence[ClassFact]] = None,
        offline: bool = False,
    ) -> List[BoundedContext]:
        """Identify bounded contexts for ``classes`` (default: every class in the model).

        Raises:
            OracleFailure: Oracle unreachable or timed out
            MalformedJudgment: Response failed schema validation, or no
                context referenced a known class
        """
        classes = list(self.model.classes) if classes is None else list(classes)
        self.warnings = []

        if offline or self.oracle is None or not self.oracle.available:
            logger.info(f"Identifying bounded contexts structurally ({len(classes)} classes)")
            return package_fallback(self.model, classes)

        payload = json.dumps([c.to_dict() for c in classes], indent=2)
        judgment = await self.oracle.judge_as(TEMPLATE_ID, {"classes": payload}, BoundedContextListSchema)
        response = judgment.unwrap()

        contexts = self.validate(response.bounded_contexts, classes)
        if not contexts:
            raise MalformedJudgment(
                "No bounded context referenced a known class",
                template_id=TEMPLATE_ID,
                raw_text=judgment.raw_text,
            )
        logger.info(
            f"Identified {len(contexts)} bounded context(s) "
            f"({len(self.warnings)} warning(s))"
        )
        return contexts

    # ── Validation ────────────────────────────────────────────────────

    def validate(
        self,
        raw_contexts: Sequence[BoundedContextSchema],
        classes: Sequence[ClassFact],
    ) -> List[BoundedContext]:
        """Resolve oracle-reported names against ``classes``.

        Unknown and ambiguous names are dropped; a class claimed by two roles
        of one context keeps the first by ROLE_ORDER. Contexts left without
        any class are dropped. An event's aggregate root must be a root of
        its own context, otherwise it is cleared. Classes no context claims
        are reported. All of these are recorded as warnings.
        """
        by_qualified: Dict[str, ClassFact] = {c.qualified_name: c for c in classes}
        by_id: Dict[ClassId, ClassFact] = {c.id: c for c in classes}
        by_simple: Dict[str, List[ClassFact]] = {}
        for c in classes:
            by_simple.setdefault(c.name, []).append(c)

        contexts: List[BoundedContext] = []
        owner: Dict[ClassId, str] = {}
        seen_names: Set[str] = set()

        for raw in raw_contexts:
            if raw.name in seen_names:
                self._warn(f"Duplicate bounded context '{raw.name}' ignored")
                continue
            seen_names.add(raw.name)

            assigned: Dict[str, Set[ClassRef]] = OrderedDict((role, set()) for role in ROLE_ORDER)
            claimed: Dict[ClassId, str] = {}
            for role in ROLE_ORDER:
                for name in getattr(raw, role):
                    fact = self._resolve(name, by_qualified, by_simple, raw.name)
                    if fact is None:
                        continue
                    if fact.id in claimed:
                        if claimed[fact.id] != role:
                            self._warn(
                                f"Context '{raw.name}': {fact.name} listed as both "
                                f"{claimed[fact.id]} and {role}; keeping {claimed[fact.id]}"
                            )
                        continue
                    claimed[fact.id] = role
                    assigned[role].add(_ref(fact))

            if not claimed:
                self._warn(f"Context '{raw.name}' references no known class; dropped")
                continue

            for cid in claimed:
                if cid in owner:
                    self._warn(f"{by_id[cid].name} appears in both '{owner[cid]}' and '{raw.name}'")
                else:
                    owner[cid] = raw.name

            root_ids = {ref.id for ref in assigned["aggregate_roots"]}
            events = tuple(
                DomainEvent(
                    name=e.name,
                    aggregate_root=self._event_root(e.name, e.aggregate_root, root_ids, by_qualified, by_simple, raw.name),
                    payload=tuple(e.payload),
                )
                for e in raw.domain_events
            )
            contexts.append(BoundedContext(
                name=raw.name,
                description=raw.description,
                aggregate_roots=frozenset(assigned["aggregate_roots"]),
                entities=frozenset(assigned["entities"]),
                value_objects=frozenset(assigned["value_objects"]),
                repositories=frozenset(assigned["repositories"]),
                services=frozenset(assigned["services"]),
                domain_events=events,
            ))

        for fact in classes:
            if fact.id not in owner:
                self._warn(f"{fact.qualified_name} is not assigned to any bounded context")

        return contexts

    def _event_root(
        self,
        event_name: str,
        root_name: str,
        root_ids: Set[ClassId],
        by_qualified: Dict[str, ClassFact],
        by_simple: Dict[str, List[ClassFact]],
        context_name: str,
    ) -> str:
        """Simple name of the event's aggregate root, or "" when it is not a root of this context."""
        if not root_name.strip():
            return ""
        fact = self._resolve(root_name, by_qualified, by_simple, context_name)
        if fact is None:
            return ""
        if fact.id not in root_ids:
            self._warn(
                f"Context '{context_name}': event '{event_name}' names {fact.name}, "
                f"which is not one of its aggregate roots; root cleared"
            )
            return ""
        return fact.name

    def _resolve(
        self,
        name: str,
        by_qualified: Dict[str, ClassFact],
        by_simple: Dict[str, List[ClassFact]],
        context_name: str,
    ) -> Optional[ClassFact]:
        name = name.strip()
        if name in by_qualified:
            return by_qualified[name]
        matches = by_simple.get(name, [])
        if len(matches) == 1:
            return matches[0]
        if matches:
            self._warn(f"Context '{context_name}': '{name}' is ambiguous ({len(matches)} classes); dropped")
        else:
            self._warn(f"Context '{context_name}': unknown class '{name}' dropped")
        return None

    def _warn(self, message: str):
        self.warnings.append(message)
        logger.warning(message)


# ── Package fallback ──────────────────────────────────────────────────

def _structural_role(fact: ClassFact) -> str:
    annotations = set(fact.annotations)
    if annotations & REPOSITORY_ANNOTATIONS or fact.name.endswith(REPOSITORY_SUFFIXES):
        return "repositories"
    if annotations & SERVICE_ANNOTATIONS or fact.name.endswith(SERVICE_SUFFIXES):
        return "services"
    if fact.kind == "interface":
        return "services"
    if annotations & VALUE_OBJECT_ANNOTATIONS:
        return "value_objects"
    if fact.field_types and all(ft.is_final for ft in fact.field_types):
        return "value_objects"
    return "entities"


def package_fallback(model: StructuralModel, classes: Optional[Sequence[ClassFact]] = None) -> List[BoundedContext]:
    """One bounded context per package, named after the package.

    Each context holds only the classes declared in that package. Roles:
    repositories and services by annotation or name suffix, value objects by
    annotation or all-final fields, the rest entities. Aggregate roots are
    the entities no other entity in the package points at (first entity by
    name when every entity is referenced). ``*Event`` classes become domain
    events and value objects.
    """
    classes = list(model.classes) if classes is None else list(classes)
    by_package: Dict[str, List[ClassFact]] = OrderedDict()
    for fact in sorted(classes, key=lambda c: (c.package, c.qualified_name)):
        by_package.setdefault(fact.package, []).append(fact)

    contexts = []
    for package, facts in by_package.items():
        roles: Dict[str, List[ClassFact]] = OrderedDict((role, []) for role in ROLE_ORDER)
        events: List[ClassFact] = []
        for fact in facts:
            if fact.name.endswith(EVENT_SUFFIX) and fact.name != EVENT_SUFFIX:
                events.append(fact)
                roles["value_objects"].append(fact)
            else:
                roles[_structural_role(fact)].append(fact)

        entities = roles["entities"]
        entity_ids = {e.id for e in entities}
        referenced = {
            edge.target
            for e in entities
            for edge in model.edges_from(e.id)
            if edge.target in entity_ids and edge.target != e.id
        }
        roots = [e for e in entities if e.id not in referenced]
        if entities and not roots:
            roots = [min(entities, key=lambda e: e.name)]
        root_ids = {r.id for r in roots}
        roles["aggregate_roots"] = roots
        roles["entities"] = [e for e in entities if e.id not in root_ids]

        root_names = sorted((r.name for r in roots), key=len, reverse=True)
        domain_events = tuple(
            DomainEvent(
                name=ev.name,
                aggregate_root=next((r for r in root_names if ev.name.startswith(r)), ""),
                payload=ev.fields,
            )
            for ev in events
        )

        name = package or DEFAULT_PACKAGE_CONTEXT
        contexts.append(BoundedContext(
            name=name,
            description=f"Classes declared in package {name}",
            domain_events=domain_events,
            **{role: frozenset(_ref(f) for f in members) for role, members in roles.items()},
        ))

    logger.info(f"Package fallback produced {len(contexts)} bounded context(s)")
    return contexts
