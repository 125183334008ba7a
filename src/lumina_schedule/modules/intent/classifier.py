"""
Complexity classification for schedule requests.

Scores a request against weighted keyword tables, applies contextual
bonuses and penalties, and decides how much autonomy the downstream
generation step should take:

    simple   -> ready_to_execute
    moderate -> confirm_plan
    complex  -> confirm_plan or needs_clarification_first

Classification is a pure function of (text, existing rule count) for a
given ClassifierConfig.
"""

import logging
import re
import threading
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from .extractor import EntityExtractor, ExtractedEntities, normalize
from .signals import (
    CANCEL_ACTIONS,
    COMPLEX_SIGNALS,
    CREATIVE_SIGNALS,
    MODERATE_SIGNALS,
    MULTI_DAY_SIGNALS,
    SIMPLE_SIGNALS,
    ScheduleSignal,
)

if TYPE_CHECKING:
    from ...core.store import ScheduleStore

logger = logging.getLogger(__name__)


class ScheduleComplexity(Enum):
    """How much work a request needs before rules can be written."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class RoutingInstruction(Enum):
    """Directive for the downstream generation step."""

    READY_TO_EXECUTE = "ready_to_execute"
    CONFIRM_PLAN = "confirm_plan"
    NEEDS_CLARIFICATION_FIRST = "needs_clarification_first"


@dataclass(frozen=True)
class ClassifierConfig:
    """
    Thresholds, bonuses and fractions used in scoring.

    Attributes:
        simple_threshold: Floor for a clear simple decision
        moderate_threshold: Floor for a moderate decision
        complex_override_threshold: Complex score that wins outright
        complex_margin: Lead over simple needed for complex-by-margin
        multi_zone_bonus: Added to complex when more than one zone is named
        variation_multi_day_bonus: Added to complex for variation + multi-day
        creative_multi_day_bonus: Added to complex for creative + multi-day
        team_variation_bonus: Added to complex for team + variation
        cancel_penalty: Subtracted from complex (moderate loses half)
        conflict_risk_high_bonus: Added to complex when many rules exist
        conflict_risk_moderate_bonus: Added to moderate when several rules exist
        conflict_risk_high_count: Rule count for the high conflict-risk bonus
        conflict_risk_moderate_count: Rule count for the moderate bonus
        multi_day_fraction: Share of a multi-day signal added to moderate
        creative_fraction: Share of a creative signal added to moderate and complex
        slot_warning_count: Rule count at which the context hint warns about slots
        timer_slots: Controller timer slots named in the slot warning
    """

    simple_threshold: float = 0.60
    moderate_threshold: float = 0.50
    complex_override_threshold: float = 0.80
    complex_margin: float = 0.30
    multi_zone_bonus: float = 0.40
    variation_multi_day_bonus: float = 0.35
    creative_multi_day_bonus: float = 0.25
    team_variation_bonus: float = 0.30
    cancel_penalty: float = 0.50
    conflict_risk_high_bonus: float = 0.20
    conflict_risk_moderate_bonus: float = 0.15
    conflict_risk_high_count: int = 5
    conflict_risk_moderate_count: int = 3
    multi_day_fraction: float = 0.4
    creative_fraction: float = 0.3
    slot_warning_count: int = 5
    timer_slots: int = 8

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassifierConfig":
        """Deserialize from dict (unknown keys are ignored)."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one request."""

    complexity: ScheduleComplexity
    signals: List[str]
    entities: ExtractedEntities
    routing: RoutingInstruction
    simple_score: float
    moderate_score: float
    complex_score: float
    reasoning: str
    existing_rule_count: int = 0
    has_multi_day: bool = False
    has_creative: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return {
            "complexity": self.complexity.value,
            "signals": list(self.signals),
            "entities": self.entities.to_dict(),
            "routing": self.routing.value,
            "scores": {
                "simple": round(self.simple_score, 3),
                "moderate": round(self.moderate_score, 3),
                "complex": round(self.complex_score, 3),
            },
            "reasoning": self.reasoning,
            "existing_rule_count": self.existing_rule_count,
        }


@dataclass
class _Scores:
    simple: float = 0.0
    moderate: float = 0.0
    complex: float = 0.0
    signals: List[str] = field(default_factory=list)


# =============================================================================
# Classifier
# =============================================================================


class ComplexityClassifier:
    """
    Classifies schedule requests as simple, moderate or complex.

    Holds the most recent result in `latest` for a single downstream
    prompt-construction step; classification itself is stateless.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        extractor: Optional[EntityExtractor] = None,
        store: Optional["ScheduleStore"] = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self._store = store
        self._extractor = extractor or EntityExtractor()
        self._latest: Optional[ClassificationResult] = None
        self._lock = threading.Lock()

    @property
    def latest(self) -> Optional[ClassificationResult]:
        """Most recent classification, if any."""
        with self._lock:
            return self._latest

    def clear_latest(self) -> None:
        with self._lock:
            self._latest = None

    def classify(
        self, text: str, existing_rule_count: Optional[int] = None
    ) -> ClassificationResult:
        """
        Classify a request.

        Args:
            text: Raw request text
            existing_rule_count: Number of standing rules (read from the
                attached store when omitted)

        Returns:
            ClassificationResult (never raises for any string input)
        """
        cfg = self.config
        if existing_rule_count is None:
            existing_rule_count = len(self._store) if self._store is not None else 0
        normalized = normalize(text)
        entities = self._extractor.extract(text)
        scores = _Scores()

        for signal in SIMPLE_SIGNALS:
            if _matches(normalized, signal):
                scores.simple += signal.weight
                scores.signals.append(f"simple:{signal.keyword}")

        for signal in MODERATE_SIGNALS:
            if _matches(normalized, signal):
                scores.moderate += signal.weight
                scores.signals.append(f"moderate:{signal.keyword}")

        for signal in COMPLEX_SIGNALS:
            if _matches(normalized, signal):
                scores.complex += signal.weight
                scores.signals.append(f"complex:{signal.keyword}")

        has_multi_day = False
        for signal in MULTI_DAY_SIGNALS:
            if _matches(normalized, signal):
                has_multi_day = True
                scores.moderate += signal.weight * cfg.multi_day_fraction
                scores.signals.append(f"multiday:{signal.keyword}")

        has_creative = False
        for signal in CREATIVE_SIGNALS:
            if _matches(normalized, signal):
                has_creative = True
                scores.moderate += signal.weight * cfg.creative_fraction
                scores.complex += signal.weight * cfg.creative_fraction
                scores.signals.append(f"creative:{signal.keyword}")

        self._apply_context(scores, entities, has_multi_day, has_creative, existing_rule_count)

        scores.simple = max(0.0, scores.simple)
        scores.moderate = max(0.0, scores.moderate)
        scores.complex = max(0.0, scores.complex)

        complexity, reasoning = self._decide(scores, entities, has_multi_day, has_creative)
        routing = determine_routing(complexity, entities)

        result = ClassificationResult(
            complexity=complexity,
            signals=scores.signals,
            entities=entities,
            routing=routing,
            simple_score=scores.simple,
            moderate_score=scores.moderate,
            complex_score=scores.complex,
            reasoning=reasoning,
            existing_rule_count=existing_rule_count,
            has_multi_day=has_multi_day,
            has_creative=has_creative,
        )

        logger.info(
            f"Schedule classification: {complexity.value} - {reasoning} "
            f"[{len(scores.signals)} signals]"
        )
        logger.debug(f"Matched signals: {scores.signals}")

        with self._lock:
            self._latest = result
        return result

    def _apply_context(
        self,
        scores: _Scores,
        entities: ExtractedEntities,
        has_multi_day: bool,
        has_creative: bool,
        existing_rule_count: int,
    ) -> None:
        cfg = self.config

        if len(entities.zone_references) > 1:
            scores.complex += cfg.multi_zone_bonus
            scores.signals.append("ctx:multi_zone")

        if entities.variation is not None and has_multi_day:
            scores.complex += cfg.variation_multi_day_bonus
            scores.signals.append("ctx:variation_multi_day")

        if has_creative and has_multi_day:
            scores.complex += cfg.creative_multi_day_bonus
            scores.signals.append("ctx:creative_multi_day")

        if entities.team_reference is not None and entities.variation is not None:
            scores.complex += cfg.team_variation_bonus
            scores.signals.append("ctx:team_variation")

        if any(a in CANCEL_ACTIONS for a in entities.action_references):
            scores.complex -= cfg.cancel_penalty
            scores.moderate -= cfg.cancel_penalty * 0.5
            scores.signals.append("ctx:cancel_penalty")

        # Many standing rules plus a multi-day request risks the timer slot limit
        if has_multi_day and existing_rule_count >= cfg.conflict_risk_high_count:
            scores.complex += cfg.conflict_risk_high_bonus
            scores.signals.append("ctx:conflict_risk_high")
        elif has_multi_day and existing_rule_count >= cfg.conflict_risk_moderate_count:
            scores.moderate += cfg.conflict_risk_moderate_bonus
            scores.signals.append("ctx:conflict_risk_moderate")

    def _decide(
        self,
        scores: _Scores,
        entities: ExtractedEntities,
        has_multi_day: bool,
        has_creative: bool,
    ) -> Tuple[ScheduleComplexity, str]:
        """Ordered decision list; first match wins."""
        cfg = self.config
        s, m, c = scores.simple, scores.moderate, scores.complex

        if c >= cfg.complex_override_threshold:
            return (
                ScheduleComplexity.COMPLEX,
                f"Complex override: score {c:.2f} >= threshold {cfg.complex_override_threshold}",
            )

        if c > s + cfg.complex_margin and c > m:
            return (
                ScheduleComplexity.COMPLEX,
                f"Complex wins by margin: c={c:.2f} > s={s:.2f}+{cfg.complex_margin}",
            )

        if s >= cfg.simple_threshold and s > m and s > c:
            return (
                ScheduleComplexity.SIMPLE,
                f"Simple wins: s={s:.2f} (>= {cfg.simple_threshold}, "
                f"beats m={m:.2f}, c={c:.2f})",
            )

        if m >= cfg.moderate_threshold or (
            has_creative and not has_multi_day and entities.variation is None
        ):
            return (
                ScheduleComplexity.MODERATE,
                f"Moderate: m={m:.2f}, creative={has_creative}, multi_day={has_multi_day}",
            )

        if s > 0 and s >= m and s >= c:
            return (
                ScheduleComplexity.SIMPLE,
                f"Simple default: s={s:.2f} >= m={m:.2f}, c={c:.2f}",
            )

        if c > m:
            return (
                ScheduleComplexity.COMPLEX,
                f"Complex edges moderate: c={c:.2f} > m={m:.2f}",
            )

        if m > 0:
            return ScheduleComplexity.MODERATE, f"Moderate fallback: m={m:.2f}"

        return (
            ScheduleComplexity.MODERATE,
            f"No strong signals, defaulting to moderate (s={s:.2f}, m={m:.2f}, c={c:.2f})",
        )

    # =========================================================================
    # Context hint
    # =========================================================================

    def build_ai_context_hint(
        self,
        result: Optional[ClassificationResult] = None,
        conflicts: Optional[Sequence[Any]] = None,
    ) -> str:
        """
        Build the instruction block for the downstream generation step.

        Args:
            result: Classification to describe (defaults to `latest`)
            conflicts: ScheduleConflict items from detect_conflicts()

        Returns:
            Multi-line text block (empty if there is nothing to describe)
        """
        result = result or self.latest
        if result is None:
            return ""

        lines = ["SCHEDULE COMPLEXITY CLASSIFICATION:"]
        lines.extend(_INSTRUCTIONS[result.complexity])
        if result.complexity == ScheduleComplexity.COMPLEX:
            if result.routing == RoutingInstruction.CONFIRM_PLAN:
                lines.append(
                    "  The request already names times, a span and a theme. "
                    "Return confirm_plan with the full set of schedule items."
                )
            else:
                lines.append("  Ask 1-3 targeted clarifying questions before generating the full plan.")
                lines.append(
                    "  After clarification, return confirm_plan with the full set of schedule items."
                )

        entities = result.entities
        if entities.has_entities:
            lines.append("")
            lines.append("EXTRACTED ENTITIES (pre-parsed on device):")
            if entities.time_references:
                lines.append(f"- Times: {', '.join(entities.time_references)}")
            if entities.date_references:
                lines.append(f"- Dates: {', '.join(entities.date_references)}")
            if entities.duration:
                lines.append(f"- Duration: {entities.duration}")
            if entities.recurrence:
                lines.append(f"- Recurrence: {entities.recurrence}")
            if entities.team_reference:
                team = entities.team_reference
                lines.append(f"- Team: {team.full_name} ({team.league})")
            if entities.holiday_reference:
                lines.append(f"- Holiday: {entities.holiday_reference}")
            if entities.zone_references:
                lines.append(f"- Zones: {', '.join(entities.zone_references)}")
            if entities.action_references:
                lines.append(f"- Actions: {', '.join(entities.action_references)}")
            if entities.variation:
                lines.append(f"- Variation: {entities.variation}")
            if entities.time_hint:
                lines.append(f"- Time of day: {entities.time_hint}")

        if result.existing_rule_count > 0:
            lines.append("")
            lines.append("SCHEDULE CONTEXT:")
            lines.append(f"- Existing schedules: {result.existing_rule_count}")
            if result.existing_rule_count >= self.config.slot_warning_count:
                lines.append(
                    "- WARNING: Schedule slots are filling up. The controller supports "
                    f"max {self.config.timer_slots} timers. Check for conflicts before adding more."
                )

        if conflicts:
            lines.append("")
            lines.append("CONFLICT WARNINGS:")
            for conflict in conflicts:
                lines.append(f"- {conflict.describe()}")

        return "\n".join(lines) + "\n"


_INSTRUCTIONS: Dict[ScheduleComplexity, List[str]] = {
    ScheduleComplexity.SIMPLE: [
        "- Classification: SIMPLE",
        "- Instruction: Return a ready_to_execute schedule.",
        "  All parameters are clear. Build the schedule item(s) directly with the "
        "device payload and return them.",
        "  Do NOT ask clarifying questions.",
    ],
    ScheduleComplexity.MODERATE: [
        "- Classification: MODERATE",
        "- Instruction: Return a confirm_plan with assumptions noted.",
        "  Some parameters need smart defaults. State your assumptions clearly so "
        "the user can confirm or adjust.",
        "  Return the proposed schedule(s) with a brief summary of what you assumed.",
    ],
    ScheduleComplexity.COMPLEX: [
        "- Classification: COMPLEX",
        "- Instruction: Plan carefully before writing schedules.",
        "  This request involves multi-day variation, creative generation, or "
        "potential schedule conflicts.",
    ],
}


def determine_routing(
    complexity: ScheduleComplexity,
    entities: ExtractedEntities,
) -> RoutingInstruction:
    """Map a complexity decision to a routing instruction."""
    if complexity == ScheduleComplexity.SIMPLE:
        return RoutingInstruction.READY_TO_EXECUTE
    if complexity == ScheduleComplexity.MODERATE:
        return RoutingInstruction.CONFIRM_PLAN

    has_time = bool(entities.time_references)
    has_span = entities.duration is not None or entities.recurrence is not None
    has_theme = (
        entities.team_reference is not None
        or entities.holiday_reference is not None
        or bool(entities.action_references)
    )
    if has_time and has_span and has_theme:
        return RoutingInstruction.CONFIRM_PLAN
    return RoutingInstruction.NEEDS_CLARIFICATION_FIRST


_REGEX_CACHE: Dict[str, re.Pattern] = {}


def _matches(text: str, signal: ScheduleSignal) -> bool:
    if signal.is_regex:
        pattern = _REGEX_CACHE.get(signal.keyword)
        if pattern is None:
            pattern = re.compile(signal.keyword, re.IGNORECASE)
            _REGEX_CACHE[signal.keyword] = pattern
        return pattern.search(text) is not None
    return signal.keyword.lower() in text
