"""Locator synthesis for browser automation."""

__version__ = "0.1.0"

from .document import Document, NodeRef, Scope
from .locator_generator import compare_strategies, synthesize_locators
from .models import CandidateLocator, RelationOption, ShadowTrail, UniquenessResult
from .relations import synthesize_relation
from .settings import EngineSettings, load_settings

__all__ = [
    "CandidateLocator",
    "Document",
    "EngineSettings",
    "NodeRef",
    "RelationOption",
    "Scope",
    "ShadowTrail",
    "UniquenessResult",
    "__version__",
    "compare_strategies",
    "load_settings",
    "synthesize_locators",
    "synthesize_relation",
]
