"""Structural model of the monolith.

Immutable facts extracted once per run: packages, classes, and the
dependency edges between them. Classes are keyed by ClassId, a hash of the
qualified name; simple and qualified names are display metadata.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NewType, Optional, Tuple

from ..errors import ParseSkipped

ClassId = NewType("ClassId", str)


def class_id(qualified_name: str) -> ClassId:
    """Derive the stable identifier for a qualified class name."""
    return ClassId(hashlib.sha1(qualified_name.encode("utf-8")).hexdigest()[:16])


class DependencyKind(str, Enum):
    """How one class depends on another."""

    INHERITANCE = "inheritance"
    COMPOSITION = "composition"
    AGGREGATION = "aggregation"
    ASSOCIATION = "association"


@dataclass(frozen=True)
class FieldType:
    """Declared type of one field declaration and whether it is final."""

    type_name: str
    is_final: bool


@dataclass(frozen=True)
class ClassFact:
    """A class or interface declared in the monolith."""

    id: ClassId
    name: str
    qualified_name: str
    package: str
    methods: Tuple[str, ...] = ()
    fields: Tuple[str, ...] = ()
    annotations: Tuple[str, ...] = ()
    supertypes: Tuple[str, ...] = ()
    field_types: Tuple[FieldType, ...] = ()
    file_path: str = ""
    kind: str = "class"

    def to_dict(self) -> dict:
        """Serialization used for oracle prompts and CLI output."""
        return {
            "name": self.name,
            "qualifiedName": self.qualified_name,
            "packageName": self.package,
            "kind": self.kind,
            "methods": list(self.methods),
            "fields": list(self.fields),
            "annotations": list(self.annotations),
            "supertypes": list(self.supertypes),
        }


@dataclass(frozen=True)
class PackageInfo:
    """A package discovered from class declarations."""

    name: str
    path: str
    sub_packages: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DependencyEdge:
    """A directed dependency from one class to a (possibly external) type.

    ``target`` is None when the type is not declared in the monolith;
    such edges are valid leaves.
    """

    source: ClassId
    source_name: str
    target_name: str
    kind: DependencyKind
    target: Optional[ClassId] = None

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass(frozen=True)
class StructuralModel:
    """Everything the builder learned about one source tree."""

    packages: Tuple[PackageInfo, ...]
    classes: Tuple[ClassFact, ...]
    dependencies: Tuple[DependencyEdge, ...]
    warnings: Tuple[ParseSkipped, ...] = ()
    _by_id: Dict[ClassId, ClassFact] = field(default_factory=dict, init=False, repr=False, compare=False)
    _by_simple_name: Dict[str, List[ClassFact]] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        by_simple: Dict[str, List[ClassFact]] = {}
        for fact in self.classes:
            self._by_id[fact.id] = fact
            by_simple.setdefault(fact.name, []).append(fact)
        self._by_simple_name.update(by_simple)

    def get(self, cid: ClassId) -> Optional[ClassFact]:
        return self._by_id.get(cid)

    def by_qualified_name(self, qualified_name: str) -> Optional[ClassFact]:
        return self._by_id.get(class_id(qualified_name))

    def by_simple_name(self, name: str) -> List[ClassFact]:
        return list(self._by_simple_name.get(name, []))

    def classes_in(self, package: str) -> List[ClassFact]:
        return [c for c in self.classes if c.package == package]

    def edges_from(self, cid: ClassId) -> List[DependencyEdge]:
        return [e for e in self.dependencies if e.source == cid]

    def to_dict(self) -> dict:
        return {
            "packages": [
                {"name": p.name, "path": p.path, "subPackages": list(p.sub_packages)}
                for p in self.packages
            ],
            "classes": [c.to_dict() for c in self.classes],
            "dependencies": [
                {
                    "sourceClass": e.source_name,
                    "targetClass": e.target_name,
                    "type": e.kind.name,
                    "resolved": e.resolved,
                }
                for e in self.dependencies
            ],
            "warnings": [str(w) for w in self.warnings],
        }
