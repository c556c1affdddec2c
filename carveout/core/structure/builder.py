"""Structural Model Builder: source tree → packages, classes, edges.

Pipeline:
1. Walk the tree in sorted order, skipping tool and VCS directories
2. Parse each file into an immutable FileFacts value (no shared state)
3. Merge FileFacts in path order, rejecting duplicate qualified names
4. Derive dependency edges from supertypes and field types
5. Resolve edge targets against the merged class set

Unreadable or syntactically broken files are skipped and recorded as
ParseSkipped warnings; the run always returns whatever did parse.

Edge kind heuristic: a field whose declaration is ``final`` is treated as
COMPOSITION (owned), any other field as AGGREGATION. Mutability stands in
for ownership strength; it is not a semantic guarantee.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..ast_parser import ClassDecl, ParseResult, is_supported_file, parse_file, should_skip_directory
from ..errors import ParseSkipped
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

logger = logging.getLogger(__name__)

_GENERIC_ARGS_RE = re.compile(r"<.*>")


@dataclass(frozen=True)
class FileFacts:
    """Immutable per-file extraction result, merged by the builder."""

    file_path: str
    package: str
    imports: Tuple[str, ...]
    classes: Tuple[ClassFact, ...]
    skipped: Optional[ParseSkipped] = None


def erase_type(type_name: str) -> str:
    """Strip generic arguments, array brackets, and varargs from a type.

    ``Map<String, List<Order>>`` → ``Map``; ``OrderLine[]`` → ``OrderLine``.
    """
    erased = _GENERIC_ARGS_RE.sub("", type_name)
    return erased.replace("[]", "").replace("...", "").strip()


def facts_from_parse(result: ParseResult) -> FileFacts:
    """Fold one ParseResult into FileFacts."""
    if result.failed:
        reason = "; ".join(e.message for e in result.errors if e.severity == "error")
        return FileFacts(
            file_path=result.file_path,
            package=result.package,
            imports=(),
            classes=(),
            skipped=ParseSkipped(result.file_path, reason),
        )

    return FileFacts(
        file_path=result.file_path,
        package=result.package,
        imports=tuple(result.imports),
        classes=tuple(_to_fact(decl) for decl in result.classes),
    )


def _to_fact(decl: ClassDecl) -> ClassFact:
    field_names: List[str] = []
    for f in decl.fields:
        field_names.extend(f.names)
    return ClassFact(
        id=class_id(decl.qualified_name),
        name=decl.name,
        qualified_name=decl.qualified_name,
        package=decl.package,
        methods=tuple(decl.methods),
        fields=tuple(field_names),
        annotations=tuple(decl.annotations),
        supertypes=tuple(decl.extends) + tuple(decl.implements),
        field_types=tuple(FieldType(f.type_name, f.is_final) for f in decl.fields),
        file_path=decl.file_path,
        kind=decl.kind,
    )


class StructuralModelBuilder:
    """Builds a StructuralModel from a directory of source files."""

    def build(self, source_root) -> StructuralModel:
        """Analyze a source tree.

        Args:
            source_root: Directory path (str or Path)

        Raises:
            NotADirectoryError: If source_root is not a directory
        """
        root = Path(source_root)
        if not root.is_dir():
            raise NotADirectoryError(f"Source root is not a directory: {root}")

        file_facts = [self._parse_one(path, root) for path in self._walk(root)]
        model = self.merge(file_facts)

        logger.info(
            f"Structural model for {root}: {len(model.packages)} packages, "
            f"{len(model.classes)} classes, {len(model.dependencies)} edges, "
            f"{len(model.warnings)} skipped"
        )
        return model

    # ── Walking / parsing ───────────────────────────────────────────

    @staticmethod
    def _walk(root: Path) -> Iterable[Path]:
        """Yield supported source files in deterministic (sorted) order."""
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))
            for filename in sorted(filenames):
                if is_supported_file(filename):
                    yield Path(dirpath) / filename

    @staticmethod
    def _parse_one(path: Path, root: Path) -> FileFacts:
        rel_path = path.relative_to(root).as_posix()
        try:
            result = parse_file(str(path), str(root))
        except Exception as e:
            logger.warning(f"Parser crashed on {rel_path}: {e}")
            return FileFacts(rel_path, "", (), (), ParseSkipped(rel_path, f"Parser crashed: {e}"))
        result.file_path = rel_path
        return facts_from_parse(result)

    # ── Merging ─────────────────────────────────────────────────────

    def merge(self, file_facts: Iterable[FileFacts]) -> StructuralModel:
        """Merge per-file results into one model.

        The first declaration of a qualified name wins; later duplicates are
        skipped with a warning.
        """
        warnings: List[ParseSkipped] = []
        classes: List[ClassFact] = []
        imports_by_class: Dict[ClassId, Tuple[str, ...]] = {}
        seen: Dict[str, str] = {}

        for ff in file_facts:
            if ff.skipped:
                logger.warning(f"Skipping {ff.skipped}")
                warnings.append(ff.skipped)
                continue
            for fact in ff.classes:
                if fact.qualified_name in seen:
                    warning = ParseSkipped(
                        ff.file_path,
                        f"Duplicate class {fact.qualified_name} (first declared in {seen[fact.qualified_name]})",
                    )
                    logger.warning(f"Skipping {warning}")
                    warnings.append(warning)
                    continue
                seen[fact.qualified_name] = ff.file_path
                classes.append(fact)
                imports_by_class[fact.id] = ff.imports

        packages = self._packages(classes)
        dependencies = self._dependencies(classes, imports_by_class)

        return StructuralModel(
            packages=packages,
            classes=tuple(classes),
            dependencies=dependencies,
            warnings=tuple(warnings),
        )

    @staticmethod
    def _packages(classes: List[ClassFact]) -> Tuple[PackageInfo, ...]:
        """Materialize packages that declare at least one class."""
        names = sorted({c.package for c in classes if c.package})
        packages = []
        for name in names:
            prefix = name + "."
            children = tuple(
                n for n in names
                if n.startswith(prefix) and "." not in n[len(prefix):]
            )
            packages.append(PackageInfo(name=name, path=name.replace(".", "/"), sub_packages=children))
        return tuple(packages)

    def _dependencies(
        self,
        classes: List[ClassFact],
        imports_by_class: Dict[ClassId, Tuple[str, ...]],
    ) -> Tuple[DependencyEdge, ...]:
        """Derive inheritance and field edges for every class."""
        known = {c.qualified_name: c for c in classes}
        by_simple: Dict[str, List[ClassFact]] = {}
        for c in classes:
            by_simple.setdefault(c.name, []).append(c)

        edges: List[DependencyEdge] = []
        for c in classes:
            imports = imports_by_class.get(c.id, ())
            for supertype in c.supertypes:
                edges.append(DependencyEdge(
                    source=c.id,
                    source_name=c.name,
                    target_name=supertype,
                    kind=DependencyKind.INHERITANCE,
                    target=self._resolve(supertype, c, imports, known, by_simple),
                ))
            for ft in c.field_types:
                edges.append(DependencyEdge(
                    source=c.id,
                    source_name=c.name,
                    target_name=ft.type_name,
                    kind=DependencyKind.COMPOSITION if ft.is_final else DependencyKind.AGGREGATION,
                    target=self._resolve(ft.type_name, c, imports, known, by_simple),
                ))
        return tuple(edges)

    @staticmethod
    def _resolve(
        type_name: str,
        owner: ClassFact,
        imports: Tuple[str, ...],
        known: Dict[str, ClassFact],
        by_simple: Dict[str, List[ClassFact]],
    ) -> Optional[ClassId]:
        """Resolve a declared type to a ClassId, or None if external.

        Order: already-qualified name → same package → single-type import
        → unique simple name across the model.
        """
        erased = erase_type(type_name)
        if not erased:
            return None

        if erased in known:
            return known[erased].id

        if owner.package:
            same_package = known.get(f"{owner.package}.{erased}")
            if same_package:
                return same_package.id

        for imported in imports:
            if imported.endswith("." + erased) and imported in known:
                return known[imported].id

        candidates = by_simple.get(erased, [])
        if len(candidates) == 1:
            return candidates[0].id
        return None
