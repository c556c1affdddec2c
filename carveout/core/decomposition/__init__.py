# Carveout Decomposition - bounded contexts and microservice candidates

from .candidates import CandidateSynthesizer, build_candidate, structural_candidate, structural_candidates
from .contexts import ContextSynthesizer, package_fallback
from .models import ROLE_ORDER, BoundedContext, ClassRef, DomainEvent, MicroserviceCandidate, slugify

__all__ = [
    "ContextSynthesizer",
    "package_fallback",
    "CandidateSynthesizer",
    "build_candidate",
    "structural_candidate",
    "structural_candidates",
    "BoundedContext",
    "ClassRef",
    "DomainEvent",
    "MicroserviceCandidate",
    "ROLE_ORDER",
    "slugify",
]
