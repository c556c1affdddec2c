"""Decomposition data models: bounded contexts and microservice candidates."""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, Tuple

from ..structure.models import ClassId

# Precedence used when a class is claimed by more than one role in a context
ROLE_ORDER = ("aggregate_roots", "entities", "value_objects", "repositories", "services")


def slugify(name: str) -> str:
    """Kebab-case a context or class name: ``OrderLine`` → ``order-line``."""
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", name)
    s = re.sub(r"[^A-Za-z0-9]+", "-", s)
    return s.strip("-").lower()


@dataclass(frozen=True, order=True)
class ClassRef:
    """Reference to a ClassFact held by a bounded context."""

    qualified_name: str
    name: str
    id: ClassId = field(compare=False)


@dataclass(frozen=True)
class DomainEvent:
    name: str
    aggregate_root: str = ""
    payload: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"name": self.name, "aggregateRoot": self.aggregate_root, "payload": list(self.payload)}


@dataclass(frozen=True)
class BoundedContext:
    """A DDD bounded context.

    The five role sets are disjoint; ContextSynthesizer enforces this when
    building contexts from oracle output.
    """

    name: str
    description: str = ""
    aggregate_roots: FrozenSet[ClassRef] = frozenset()
    entities: FrozenSet[ClassRef] = frozenset()
    value_objects: FrozenSet[ClassRef] = frozenset()
    repositories: FrozenSet[ClassRef] = frozenset()
    services: FrozenSet[ClassRef] = frozenset()
    domain_events: Tuple[DomainEvent, ...] = ()

    def __post_init__(self):
        seen = set()
        for role in ROLE_ORDER:
            ids = {ref.id for ref in getattr(self, role)}
            overlap = seen & ids
            if overlap:
                raise ValueError(f"Bounded context '{self.name}': class listed in more than one role ({role})")
            seen |= ids

    def members(self) -> Iterator[Tuple[str, ClassRef]]:
        """(role, ref) for every class in the context, in role order."""
        for role in ROLE_ORDER:
            for ref in sorted(getattr(self, role)):
                yield role, ref

    @property
    def class_ids(self) -> FrozenSet[ClassId]:
        return frozenset(ref.id for _, ref in self.members())

    @property
    def class_names(self) -> Tuple[str, ...]:
        return tuple(ref.name for _, ref in self.members())

    def to_dict(self) -> dict:
        def names(refs):
            return sorted(ref.name for ref in refs)

        return {
            "name": self.name,
            "description": self.description,
            "aggregateRoots": names(self.aggregate_roots),
            "entities": names(self.entities),
            "valueObjects": names(self.value_objects),
            "repositories": names(self.repositories),
            "services": names(self.services),
            "domainEvents": [e.to_dict() for e in self.domain_events],
        }


@dataclass(frozen=True)
class MicroserviceCandidate:
    """A service proposed for extraction from one bounded context.

    ``commands`` and ``queries`` are disjoint.
    """

    name: str
    bounded_context: BoundedContext
    apis: FrozenSet[str] = frozenset()
    commands: FrozenSet[str] = frozenset()
    queries: FrozenSet[str] = frozenset()
    required_services: Tuple[str, ...] = ()

    def __post_init__(self):
        both = self.commands & self.queries
        if both:
            raise ValueError(f"Candidate '{self.name}': {sorted(both)} are both command and query")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "boundedContext": self.bounded_context.name,
            "apis": sorted(self.apis),
            "commands": sorted(self.commands),
            "queries": sorted(self.queries),
            "requiredServices": list(self.required_services),
        }
