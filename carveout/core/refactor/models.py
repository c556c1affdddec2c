"""Refactor Orchestrator models."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from ..config import get_config_value
from ..errors import FileFailure

DEFAULT_EXCLUDE_PATTERNS = ("*Test.java", "*Tests.java")


@dataclass(frozen=True)
class RefactorConfig:
    """Knobs for one refactor run.

    Originals are never modified; there is no option to do so.
    """

    update_references: bool = True
    exclude_patterns: Tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS

    @classmethod
    def from_config(cls) -> "RefactorConfig":
        return cls(
            update_references=bool(get_config_value("refactor", "update_references", default=True)),
            exclude_patterns=tuple(
                get_config_value("refactor", "exclude_patterns", default=list(DEFAULT_EXCLUDE_PATTERNS))
            ),
        )


@dataclass(frozen=True)
class FileMove:
    """A file fully written to its target."""

    source_path: Path
    target_path: Path


@dataclass(frozen=True)
class RefactorResult:
    candidate: str
    moves: Tuple[FileMove, ...] = ()
    failures: Tuple[FileFailure, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def moved_paths(self) -> List[Path]:
        return [m.target_path for m in self.moves]

    @property
    def old_to_new_paths(self) -> Dict[str, str]:
        return {str(m.source_path): str(m.target_path) for m in self.moves}

    def to_dict(self) -> dict:
        return {
            "candidate": self.candidate,
            "refactoredFiles": [str(p) for p in self.moved_paths],
            "oldToNewPaths": self.old_to_new_paths,
            "failures": [
                {"file": f.source_path, "stage": f.stage, "reason": f.reason, "target": f.target_path}
                for f in self.failures
            ],
            "warnings": list(self.warnings),
        }
