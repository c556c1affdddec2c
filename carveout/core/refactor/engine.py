"""Refactor Orchestrator - moves a candidate's source files into its service.

Two passes, the second strictly after the first:
1. Move: each located file is judged with ``refactor-class``; its ordered
   edits are applied and the result is written atomically to the target.
2. Propagate: each moved file is judged with ``dependency-update`` and its
   ``old ->> new`` substitutions are applied verbatim.

A file is either fully moved or not moved at all: a propagation failure
deletes that file's target. Originals are never touched, and re-running a
move overwrites its target.
"""

import json
import logging
import os
import re
import tempfile
from fnmatch import fnmatch
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..ast_parser.utils import should_skip_directory
from ..decomposition import MicroserviceCandidate
from ..errors import FileFailure, PartialRefactorFailure
from ..oracle import DependencyUpdateSchema, JudgmentRequest, RefactorPlanSchema, SemanticOracle
from ..oracle.schemas import RefactoringSchema
from .models import FileMove, RefactorConfig, RefactorResult

logger = logging.getLogger(__name__)

MOVE_TEMPLATE = "refactor-class"
PROPAGATE_TEMPLATE = "dependency-update"

_IMPORT_RE = re.compile(r"^\s*import\s+[^;]+;", re.MULTILINE)

PathLike = Union[str, Path]


def write_atomic(path: Path, content: str):
    """Write via a sibling temp file and ``os.replace``; never leaves a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def resolve_target(target_root: Path, new_location: str) -> Path:
    """Target path for ``new_location``, which must stay inside ``target_root``.

    Raises:
        ValueError: Absolute locations or locations escaping the root
    """
    relative = Path(new_location.strip())
    if relative.is_absolute():
        raise ValueError(f"newLocation must be relative: {new_location}")
    root = target_root.resolve()
    target = (root / relative).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        raise ValueError(f"newLocation escapes the target root: {new_location}") from None
    if target == root:
        raise ValueError(f"newLocation names the target root: {new_location}")
    return target


class RefactorOrchestrator:
    """Moves the files of one candidate into ``target_root``."""

    def __init__(self, oracle: SemanticOracle, config: Optional[RefactorConfig] = None):
        self.oracle = oracle
        self.config = config or RefactorConfig()

    async def refactor(
        self,
        monolith_root: PathLike,
        candidate: MicroserviceCandidate,
        target_root: PathLike,
    ) -> List[Path]:
        """Move the candidate's files and return the target paths written.

        Raises:
            PartialRefactorFailure: Any file failed; carries the failures and
                the paths that were moved
        """
        result = await self.run(monolith_root, candidate, target_root)
        if result.failures:
            raise PartialRefactorFailure(candidate.name, result.failures, result.moved_paths)
        return result.moved_paths

    async def run(
        self,
        monolith_root: PathLike,
        candidate: MicroserviceCandidate,
        target_root: PathLike,
    ) -> RefactorResult:
        """Non-raising form of ``refactor``: returns moves and failures together."""
        monolith_root = Path(monolith_root)
        target_root = Path(target_root)
        sources = self.locate(monolith_root, candidate)
        logger.info(f"Refactoring {candidate.name}: {len(sources)} file(s) located")

        warnings: List[str] = []
        moves, failures = await self._move_pass(sources, candidate, target_root, warnings)

        if self.config.update_references and moves:
            moves, propagate_failures = await self._propagate_pass(moves, candidate, monolith_root, target_root)
            failures.extend(propagate_failures)

        result = RefactorResult(
            candidate=candidate.name,
            moves=tuple(moves),
            failures=tuple(failures),
            warnings=tuple(warnings),
        )
        logger.info(
            f"Refactor {candidate.name}: {len(result.moves)} moved, {len(result.failures)} failed"
        )
        return result

    def rollback(self, result: RefactorResult) -> List[Path]:
        """Delete every target written by ``result``; originals are untouched."""
        removed = []
        for move in result.moves:
            if move.target_path.exists():
                move.target_path.unlink()
                removed.append(move.target_path)
        logger.info(f"Rolled back {len(removed)} file(s) for {result.candidate}")
        return removed

    # ── Step 1: locate ────────────────────────────────────────────────

    def locate(self, monolith_root: Path, candidate: MicroserviceCandidate) -> List[Path]:
        """Files named ``<ClassName>.java`` for every class in the candidate's context."""
        if not monolith_root.is_dir():
            raise NotADirectoryError(f"Not a directory: {monolith_root}")

        names = set(candidate.bounded_context.class_names)
        found: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(monolith_root):
            dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))
            for filename in sorted(filenames):
                if not filename.endswith(".java") or filename[:-len(".java")] not in names:
                    continue
                if any(fnmatch(filename, pattern) for pattern in self.config.exclude_patterns):
                    logger.debug(f"Excluded {filename}")
                    continue
                found.append(Path(dirpath) / filename)
        return found

    # ── Step 2: move ──────────────────────────────────────────────────

    async def _move_pass(
        self,
        sources: List[Path],
        candidate: MicroserviceCandidate,
        target_root: Path,
        warnings: List[str],
    ) -> Tuple[List[FileMove], List[FileFailure]]:
        target_context = json.dumps(
            {"service": candidate.name, **candidate.bounded_context.to_dict()}, indent=2
        )
        contents = {}
        requests = []
        failures: List[FileFailure] = []
        for source in sources:
            try:
                contents[source] = source.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                failures.append(FileFailure(str(source), "move", f"unreadable: {e}"))
                continue
            requests.append(JudgmentRequest(
                MOVE_TEMPLATE,
                {"sourceCode": contents[source], "sourcePath": source.name, "targetContext": target_context},
                RefactorPlanSchema,
            ))

        readable = [s for s in sources if s in contents]
        judgments = await self.oracle.judge_many(requests)

        moves: List[FileMove] = []
        written = {}
        for source, judgment in zip(readable, judgments):
            if not judgment.ok:
                failures.append(FileFailure(str(source), "move", judgment.reason))
                continue
            plan: RefactoringSchema = judgment.value.refactoring
            try:
                target = resolve_target(target_root, plan.new_location)
                if target in written:
                    raise ValueError(f"target already written for {written[target]}")
                content = self._apply_edits(contents[source], plan, source, warnings)
                write_atomic(target, content)
            except (ValueError, OSError) as e:
                failures.append(FileFailure(str(source), "move", str(e)))
                continue
            written[target] = source
            moves.append(FileMove(source_path=source, target_path=target))
            logger.debug(f"Moved {source} -> {target}")

        return moves, failures

    @staticmethod
    def _apply_edits(content: str, plan: RefactoringSchema, source: Path, warnings: List[str]) -> str:
        for step in plan.steps:
            if step.old_code not in content:
                warnings.append(f"{source.name}: edit target not found: {step.old_code!r}")
                continue
            content = content.replace(step.old_code, step.new_code)
        return content

    # ── Step 3: propagate ─────────────────────────────────────────────

    async def _propagate_pass(
        self,
        moves: List[FileMove],
        candidate: MicroserviceCandidate,
        monolith_root: Path,
        target_root: Path,
    ) -> Tuple[List[FileMove], List[FileFailure]]:
        moved_listing = "\n".join(
            f"{m.source_path.relative_to(monolith_root)} -> {m.target_path.relative_to(target_root.resolve())}"
            for m in moves
        )
        service_context = json.dumps({"service": candidate.name, "apis": sorted(candidate.apis)})

        kept: List[FileMove] = []
        failures: List[FileFailure] = []
        contents = {}
        for m in moves:
            try:
                contents[m] = m.target_path.read_text(encoding="utf-8")
            except OSError as e:
                m.target_path.unlink(missing_ok=True)
                failures.append(FileFailure(str(m.source_path), "propagate", f"unreadable: {e}", str(m.target_path)))

        pending = [m for m in moves if m in contents]
        requests = [
            JudgmentRequest(
                PROPAGATE_TEMPLATE,
                {
                    "originalDependencies": "\n".join(_IMPORT_RE.findall(contents[m])) or "(none)",
                    "refactoredClass": contents[m],
                    "serviceContext": service_context,
                    "movedClasses": moved_listing,
                },
                DependencyUpdateSchema,
            )
            for m in pending
        ]
        judgments = await self.oracle.judge_many(requests)

        for move, judgment in zip(pending, judgments):
            try:
                if not judgment.ok:
                    raise ValueError(judgment.reason)
                content = contents[move]
                for update in judgment.value.updates:
                    for old, new in update.substitutions():
                        content = content.replace(old, new)
                write_atomic(move.target_path, content)
            except (ValueError, OSError) as e:
                move.target_path.unlink(missing_ok=True)
                failures.append(FileFailure(str(move.source_path), "propagate", str(e), str(move.target_path)))
                logger.warning(f"Propagation failed for {move.source_path}; target removed")
                continue
            kept.append(move)

        return kept, failures
