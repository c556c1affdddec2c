# Carveout Refactor Orchestrator - moves a candidate's files into its service

from .engine import RefactorOrchestrator, resolve_target, write_atomic
from .models import FileMove, RefactorConfig, RefactorResult

__all__ = [
    "RefactorOrchestrator",
    "RefactorConfig",
    "RefactorResult",
    "FileMove",
    "resolve_target",
    "write_atomic",
]
