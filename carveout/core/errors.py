"""Error taxonomy for the decomposition-and-planning pipeline.

Per-unit failures (one file, one context) are aggregated by the stage that
produced them; invariant violations in planning are raised before a plan
ever leaves the planner.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple


class CarveoutError(Exception):
    """Base class for all pipeline errors."""


@dataclass(frozen=True)
class ParseSkipped:
    """A source file that was skipped during structural extraction.

    Recorded as a warning on the StructuralModel, never raised.
    """

    file_path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.file_path}: {self.reason}"


class OracleFailure(CarveoutError):
    """The oracle could not be reached, timed out, or returned an error."""

    def __init__(self, message: str, template_id: Optional[str] = None, cause: Optional[BaseException] = None):
        self.template_id = template_id
        self.cause = cause
        prefix = f"[{template_id}] " if template_id else ""
        super().__init__(f"{prefix}{message}")


class OracleUnavailable(OracleFailure):
    """No oracle is configured for this run."""


class MalformedJudgment(CarveoutError):
    """The oracle responded, but the content failed schema validation."""

    def __init__(self, message: str, template_id: Optional[str] = None, raw_text: str = ""):
        self.template_id = template_id
        self.raw_text = raw_text
        prefix = f"[{template_id}] " if template_id else ""
        super().__init__(f"{prefix}{message}")


class PartialCandidateFailure(CarveoutError):
    """One or more bounded contexts failed to produce a candidate.

    Attributes:
        succeeded: candidates produced for the contexts that succeeded
        failed: (context_name, reason) pairs for the contexts that failed
    """

    def __init__(self, succeeded: Sequence[Any], failed: Sequence[Tuple[str, str]]):
        self.succeeded = list(succeeded)
        self.failed = list(failed)
        names = ", ".join(name for name, _ in self.failed)
        super().__init__(
            f"{len(self.failed)} context(s) failed candidate synthesis: {names} "
            f"({len(self.succeeded)} succeeded)"
        )


class UnsatisfiedDependencyOrder(CarveoutError):
    """A phase requires a candidate that has not completed before it."""

    def __init__(self, phase_number: int, candidate: str, dependency: str, reason: str):
        self.phase_number = phase_number
        self.candidate = candidate
        self.dependency = dependency
        self.reason = reason
        super().__init__(
            f"Phase {phase_number}: candidate '{candidate}' requires '{dependency}' ({reason})"
        )


class InvalidPlanConfiguration(CarveoutError):
    """Planner inputs or overrides violate the plan's structural rules."""


@dataclass(frozen=True)
class FileFailure:
    """A single file that failed to move or propagate."""

    source_path: str
    stage: str  # "move" | "propagate"
    reason: str
    target_path: Optional[str] = None


class PartialRefactorFailure(CarveoutError):
    """One or more files of a candidate failed to move or propagate.

    Attributes:
        candidate: candidate name
        failures: FileFailure records
        succeeded: target paths that were fully moved
    """

    def __init__(self, candidate: str, failures: Sequence[FileFailure], succeeded: Sequence[Any]):
        self.candidate = candidate
        self.failures: List[FileFailure] = list(failures)
        self.succeeded = list(succeeded)
        files = ", ".join(f.source_path for f in self.failures)
        super().__init__(
            f"Candidate '{candidate}': {len(self.failures)} file(s) failed ({files}); "
            f"{len(self.succeeded)} moved"
        )
