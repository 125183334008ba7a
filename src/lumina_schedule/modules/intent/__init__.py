"""
Request intent analysis for lighting schedules.

Turns a free-text schedule request into structured entities and a
complexity decision that tells the downstream generation step how much
autonomy to take:

    request text
        │
        ▼
    EntityExtractor ──► ExtractedEntities
        │
        ▼
    ComplexityClassifier ──► ClassificationResult (complexity + routing)
        │
        ▼
    build_ai_context_hint() (+ detect_conflicts())

Everything here is deterministic keyword and pattern scoring.
"""

from .signals import ScheduleSignal, TeamReference
from .extractor import EntityExtractor, ExtractedEntities
from .classifier import (
    ClassificationResult,
    ClassifierConfig,
    ComplexityClassifier,
    RoutingInstruction,
    ScheduleComplexity,
    determine_routing,
)
from .conflicts import (
    ConflictResolution,
    ScheduleConflict,
    detect_conflicts,
    suggest_resolution,
)

__all__ = [
    "ScheduleSignal",
    "TeamReference",
    "EntityExtractor",
    "ExtractedEntities",
    "ClassificationResult",
    "ClassifierConfig",
    "ComplexityClassifier",
    "RoutingInstruction",
    "ScheduleComplexity",
    "determine_routing",
    "ConflictResolution",
    "ScheduleConflict",
    "detect_conflicts",
    "suggest_resolution",
]
