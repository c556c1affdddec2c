# Carveout Structural Model - immutable facts about the monolith
# packages, classes, and inter-class dependency edges

from .builder import FileFacts, StructuralModelBuilder, erase_type, facts_from_parse
from .models import (
    ClassFact,
    ClassId,
    DependencyEdge,
    DependencyKind,
    FieldType,
    PackageInfo,
    StructuralModel,
    class_id,
)

__all__ = [
    "StructuralModelBuilder",
    "FileFacts",
    "facts_from_parse",
    "erase_type",
    "ClassFact",
    "ClassId",
    "DependencyEdge",
    "DependencyKind",
    "FieldType",
    "PackageInfo",
    "StructuralModel",
    "class_id",
]
