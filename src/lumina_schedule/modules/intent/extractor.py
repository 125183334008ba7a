"""
Entity extraction for natural-language schedule requests.

Pure keyword and regex matching: no network, no store access. Every
category is extracted independently; a category with no match is simply
empty. Runs before the complexity classifier and grounds the downstream
generation step with pre-parsed data.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .signals import (
    ACTION_KEYWORDS,
    KNOWN_HOLIDAYS,
    KNOWN_TEAMS,
    KNOWN_ZONES,
    MONTH_NAMES,
    TeamReference,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedEntities:
    """
    Structured entities pulled from one request.

    Attributes:
        time_references: Clock times, solar keywords, named times ("10pm", "sunset")
        date_references: Relative dates, weekdays, calendar dates
        duration: Span token ("all_month", "3_days", "through_december")
        recurrence: Recurrence token ("every_night", "weekdays")
        team_reference: Sports team, if one is named
        holiday_reference: Canonical holiday name
        zone_references: Canonical zone identifiers
        action_references: Canonical action identifiers
        variation: Variation token ("different_each", "rotate")
        time_hint: Coarse time of day ("night", "morning", "afternoon", "evening")
    """

    time_references: List[str] = field(default_factory=list)
    date_references: List[str] = field(default_factory=list)
    duration: Optional[str] = None
    recurrence: Optional[str] = None
    team_reference: Optional[TeamReference] = None
    holiday_reference: Optional[str] = None
    zone_references: List[str] = field(default_factory=list)
    action_references: List[str] = field(default_factory=list)
    variation: Optional[str] = None
    time_hint: Optional[str] = None

    @property
    def has_entities(self) -> bool:
        """True when any field is populated."""
        return bool(
            self.time_references
            or self.date_references
            or self.duration
            or self.recurrence
            or self.team_reference
            or self.holiday_reference
            or self.zone_references
            or self.action_references
            or self.variation
            or self.time_hint
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize populated fields only."""
        result: Dict[str, Any] = {}
        if self.time_references:
            result["time_references"] = list(self.time_references)
        if self.date_references:
            result["date_references"] = list(self.date_references)
        if self.duration:
            result["duration"] = self.duration
        if self.recurrence:
            result["recurrence"] = self.recurrence
        if self.team_reference:
            result["team_reference"] = self.team_reference.short_name
        if self.holiday_reference:
            result["holiday_reference"] = self.holiday_reference
        if self.zone_references:
            result["zone_references"] = list(self.zone_references)
        if self.action_references:
            result["action_references"] = list(self.action_references)
        if self.variation:
            result["variation"] = self.variation
        if self.time_hint:
            result["time_hint"] = self.time_hint
        return result


# =============================================================================
# Pattern tables
# =============================================================================

_CLOCK_TIME = re.compile(r"\b(\d{1,2}(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.))(?=\W|$)")
_SOLAR_KEYWORDS = ("sunset", "sunrise", "dusk", "dawn", "sundown", "sunup")
_NAMED_TIMES = ("noon", "midnight")

_DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_DAY_ABBREVIATIONS = ("mon", "tue", "tues", "wed", "thu", "thur", "thurs", "fri", "sat", "sun")
_RELATIVE_DATES = (
    "today",
    "tonight",
    "tomorrow",
    "tomorrow night",
    "this evening",
    "this morning",
    "this weekend",
    "next week",
    "next weekend",
    "next month",
)
_CALENDAR_DATE = re.compile(rf"\b(?:{MONTH_NAMES})\s+\d{{1,2}}(?:st|nd|rd|th)?\b")

# Ordered: first match wins. "n_" tokens interpolate the captured number,
# "through_"/"until_" tokens interpolate the captured month.
_DURATION_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\ball\s+month\b"), "all_month"),
    (re.compile(r"\ball\s+season\b"), "all_season"),
    (re.compile(r"\ball\s+week\b"), "all_week"),
    (re.compile(r"\bfor\s+a\s+week\b"), "one_week"),
    (re.compile(r"\bfor\s+the\s+week\b"), "one_week"),
    (re.compile(r"\bfor\s+a\s+month\b"), "one_month"),
    (re.compile(r"\bfor\s+the\s+month\b"), "one_month"),
    (re.compile(r"\bnext\s+week\b"), "next_week"),
    (re.compile(r"\bnext\s+month\b"), "next_month"),
    (re.compile(r"\brest\s+of\s+the\s+season\b"), "rest_of_season"),
    (re.compile(r"\brest\s+of\s+the\s+month\b"), "rest_of_month"),
    (re.compile(r"\brest\s+of\s+the\s+week\b"), "rest_of_week"),
    (re.compile(r"\b(\d+)\s+days?\b"), "n_days"),
    (re.compile(r"\b(\d+)\s+nights?\b"), "n_nights"),
    (re.compile(r"\b(\d+)\s+weeks?\b"), "n_weeks"),
    (re.compile(r"\b(\d+)\s+months?\b"), "n_months"),
    (re.compile(rf"\bthrough\s+({MONTH_NAMES})\b"), "through_month"),
    (re.compile(rf"\buntil\s+({MONTH_NAMES})\b"), "until_month"),
)

_RECURRENCE_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bevery\s+night\b"), "every_night"),
    (re.compile(r"\bevery\s+evening\b"), "every_evening"),
    (re.compile(r"\bevery\s+morning\b"), "every_morning"),
    (re.compile(r"\bevery\s+day\b"), "every_day"),
    (re.compile(r"\bnightly\b"), "nightly"),
    (re.compile(r"\bdaily\b"), "daily"),
    (re.compile(r"\bweekly\b"), "weekly"),
    (re.compile(r"\bon\s+weekdays\b"), "weekdays"),
    (re.compile(r"\bon\s+weekends\b"), "weekends"),
    (re.compile(r"\bweekdays\b"), "weekdays"),
    (re.compile(r"\bweeknights\b"), "weeknights"),
    (re.compile(r"\bweekends\b"), "weekends"),
    (re.compile(r"\bevery\s+game\s*day\b"), "every_game_day"),
)

_VARIATION_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bdifferent\s+each\s+(night|day|evening)\b"), "different_each"),
    (re.compile(r"\bdifferent\s+every\s+(night|day|evening)\b"), "different_every"),
    (re.compile(r"\bnew\s+(design|pattern|look)\s+each\b"), "new_each"),
    (re.compile(r"\bchange\s+(it\s+)?up\s+each\b"), "change_each"),
    (re.compile(r"\brotate\b"), "rotate"),
    (re.compile(r"\brotation\b"), "rotation"),
    (re.compile(r"\balternate\b"), "alternate"),
    (re.compile(r"\balternating\b"), "alternating"),
    (re.compile(r"\bcycle\s+through\b"), "cycle_through"),
    (re.compile(r"\bmix\s+it\s+up\b"), "mix_it_up"),
    (re.compile(r"\bvariety\b"), "variety"),
    (re.compile(r"\brandom(ize)?\b"), "randomize"),
    (re.compile(r"\bsurprise\s+me\b"), "surprise"),
)

_TIME_HINTS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(night|tonight|evening|after\s+dark|late)\b"), "night"),
    (re.compile(r"\b(morning|dawn|sunrise|wake\s+up)\b"), "morning"),
    (re.compile(r"\b(afternoon)\b"), "afternoon"),
    (re.compile(r"\b(dusk|sunset|sundown)\b"), "evening"),
)


def _word(keyword: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(keyword)}\b")


def _longest_first(keys) -> List[str]:
    return sorted(keys, key=len, reverse=True)


_TEAM_KEYS = [(key, _word(key)) for key in _longest_first(KNOWN_TEAMS)]
_HOLIDAY_KEYS = _longest_first(KNOWN_HOLIDAYS)
_ZONE_KEYS = _longest_first(KNOWN_ZONES)
_ACTION_KEYS = _longest_first(ACTION_KEYWORDS)


# =============================================================================
# Extractor
# =============================================================================


class EntityExtractor:
    """
    Extracts structured entities from schedule request text.

    Stateless; safe to share between threads.
    """

    def extract(self, text: str) -> ExtractedEntities:
        """
        Extract all recognizable entities from text.

        Args:
            text: Raw request text

        Returns:
            ExtractedEntities (empty when nothing matched)
        """
        normalized = normalize(text)

        entities = ExtractedEntities(
            time_references=self._extract_times(normalized),
            date_references=self._extract_dates(normalized),
            duration=self._extract_duration(normalized),
            recurrence=_first_token(_RECURRENCE_PATTERNS, normalized),
            team_reference=self._extract_team(normalized),
            holiday_reference=self._extract_holiday(normalized),
            zone_references=self._extract_zones(normalized),
            action_references=self._extract_actions(normalized),
            variation=_first_token(_VARIATION_PATTERNS, normalized),
            time_hint=_first_token(_TIME_HINTS, normalized),
        )

        logger.debug(f"Extracted entities: {entities.to_dict()}")
        return entities

    def _extract_times(self, text: str) -> List[str]:
        results = [m.group(1).strip() for m in _CLOCK_TIME.finditer(text)]
        results.extend(k for k in _SOLAR_KEYWORDS if _word(k).search(text))
        results.extend(k for k in _NAMED_TIMES if _word(k).search(text))
        return results

    def _extract_dates(self, text: str) -> List[str]:
        results: List[str] = []

        # "tomorrow night" before "tomorrow"; a phrase inside a longer match is not repeated
        for phrase in _longest_first(_RELATIVE_DATES):
            if phrase in text and not any(phrase in found for found in results):
                results.append(phrase)

        full_days = [day for day in _DAY_NAMES if _word(day).search(text)]
        results.extend(full_days)

        if not full_days:
            results.extend(a for a in _DAY_ABBREVIATIONS if _word(a).search(text))

        results.extend(m.group(0).strip() for m in _CALENDAR_DATE.finditer(text))
        return results

    def _extract_duration(self, text: str) -> Optional[str]:
        for pattern, token in _DURATION_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            if token.startswith("n_"):
                return f"{match.group(1)}_{token[2:]}"
            if token in ("through_month", "until_month"):
                prefix = token.split("_", 1)[0]
                return f"{prefix}_{match.group(1)}"
            return token
        return None

    def _extract_team(self, text: str) -> Optional[TeamReference]:
        for key, pattern in _TEAM_KEYS:
            if pattern.search(text):
                return KNOWN_TEAMS[key]
        return None

    def _extract_holiday(self, text: str) -> Optional[str]:
        for key in _HOLIDAY_KEYS:
            if key in text:
                return KNOWN_HOLIDAYS[key]
        return None

    def _extract_zones(self, text: str) -> List[str]:
        found: List[str] = []
        consumed = text
        for key in _ZONE_KEYS:
            pattern = _word(key)
            if pattern.search(consumed):
                canonical = KNOWN_ZONES[key]
                if canonical not in found:
                    found.append(canonical)
                # Blank the phrase so shorter keys inside it cannot match again
                consumed = pattern.sub(" ", consumed)
        return found

    def _extract_actions(self, text: str) -> List[str]:
        results: List[str] = []
        for key in _ACTION_KEYS:
            if key in text:
                action = ACTION_KEYWORDS[key]
                if action not in results:
                    results.append(action)
        return results


def normalize(text: str) -> str:
    """Lower-case and trim request text."""
    return text.lower().strip()


def _first_token(patterns: Tuple[Tuple[re.Pattern, str], ...], text: str) -> Optional[str]:
    for pattern, token in patterns:
        if pattern.search(text):
            return token
    return None
