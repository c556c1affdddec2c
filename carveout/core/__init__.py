# Lazy imports to avoid triggering the full dependency chain.
# This allows targeted imports like `from carveout.core.structure import StructuralModelBuilder`
# without pulling in LlamaIndex and the provider SDKs.

__all__ = [
    "StructuralModelBuilder",
    "StructuralModel",
    "ContextSynthesizer",
    "CandidateSynthesizer",
    "StranglerPlanner",
    "RefactorOrchestrator",
    "SemanticOracle",
    "ModernizationPipeline",
]

_IMPORT_MAP = {
    "StructuralModelBuilder": ".structure",
    "StructuralModel": ".structure",
    "ContextSynthesizer": ".decomposition",
    "CandidateSynthesizer": ".decomposition",
    "StranglerPlanner": ".planner",
    "RefactorOrchestrator": ".refactor",
    "SemanticOracle": ".oracle",
    "ModernizationPipeline": ".pipeline",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'carveout.core' has no attribute {name}")
