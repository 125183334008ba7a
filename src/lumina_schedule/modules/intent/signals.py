"""
Keyword tables and weights for schedule request classification.

Kept apart from the classifier so signal data can be tuned without
touching scoring logic. Weights are relative; thresholds live in
ClassifierConfig.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class ScheduleSignal:
    """A weighted keyword or regex pattern that signals request complexity."""

    keyword: str
    weight: float
    is_regex: bool = False  # Literal substrings otherwise


@dataclass(frozen=True)
class TeamReference:
    """A sports team named in a request."""

    full_name: str
    league: str
    short_name: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "full_name": self.full_name,
            "league": self.league,
            "short_name": self.short_name,
        }


MONTH_NAMES = (
    "january|february|march|april|may|june|july|august|september|october|november|december"
)


# =============================================================================
# Simple signals - single event, parameters clear
# =============================================================================

SIMPLE_SIGNALS: Tuple[ScheduleSignal, ...] = (
    # Explicit power commands
    ScheduleSignal("turn off", 0.90),
    ScheduleSignal("turn on", 0.85),
    ScheduleSignal("shut off", 0.85),
    ScheduleSignal("lights off", 0.85),
    ScheduleSignal("lights on", 0.80),
    ScheduleSignal("switch off", 0.80),
    ScheduleSignal("switch on", 0.80),
    ScheduleSignal("power off", 0.80),
    ScheduleSignal("power on", 0.75),
    # Clear single-time references
    ScheduleSignal(r"\bat\s+\d{1,2}\s*(am|pm)\b", 0.75, is_regex=True),
    ScheduleSignal(r"\bat\s+\d{1,2}:\d{2}\s*(am|pm)?\b", 0.75, is_regex=True),
    ScheduleSignal("at sunset", 0.80),
    ScheduleSignal("at sunrise", 0.80),
    ScheduleSignal("at dusk", 0.75),
    ScheduleSignal("at dawn", 0.75),
    # Clear recurrence
    ScheduleSignal("every night", 0.70),
    ScheduleSignal("every evening", 0.70),
    ScheduleSignal("every morning", 0.65),
    ScheduleSignal("every day", 0.65),
    ScheduleSignal("nightly", 0.70),
    ScheduleSignal("daily", 0.65),
    # One-time
    ScheduleSignal("tonight", 0.75),
    ScheduleSignal("tomorrow", 0.70),
    ScheduleSignal("tomorrow night", 0.75),
    ScheduleSignal("this evening", 0.70),
    # Plain colors / scenes
    ScheduleSignal("warm white", 0.65),
    ScheduleSignal("cool white", 0.65),
    ScheduleSignal("solid", 0.60),
    # Cancel / delete
    ScheduleSignal("cancel", 0.80),
    ScheduleSignal("delete", 0.75),
    ScheduleSignal("remove", 0.75),
    ScheduleSignal("disable", 0.70),
    ScheduleSignal("pause", 0.65),
    ScheduleSignal("stop", 0.65),
)


# =============================================================================
# Moderate signals - themed recurring, or one ambiguity
# =============================================================================

MODERATE_SIGNALS: Tuple[ScheduleSignal, ...] = (
    # Themed recurring schedules
    ScheduleSignal("every game day", 0.85),
    ScheduleSignal("game day", 0.75),
    ScheduleSignal("game night", 0.70),
    ScheduleSignal("holiday mode", 0.80),
    ScheduleSignal("party mode", 0.70),
    ScheduleSignal("date night", 0.65),
    # Modification with ambiguity
    ScheduleSignal("change my", 0.70),
    ScheduleSignal("update my", 0.70),
    ScheduleSignal("modify my", 0.70),
    ScheduleSignal("adjust my", 0.65),
    ScheduleSignal("something different", 0.75),
    ScheduleSignal("something new", 0.70),
    ScheduleSignal("switch it up", 0.70),
    ScheduleSignal("change it up", 0.70),
    # References to the existing schedule
    ScheduleSignal("my schedule", 0.60),
    ScheduleSignal("my evening schedule", 0.65),
    ScheduleSignal("my morning schedule", 0.65),
    ScheduleSignal("my current schedule", 0.70),
    ScheduleSignal("the schedule", 0.55),
    ScheduleSignal("existing schedule", 0.65),
    # Starting from a date
    ScheduleSignal("starting", 0.55),
    ScheduleSignal("starting next", 0.65),
    ScheduleSignal("beginning", 0.55),
    ScheduleSignal("from now on", 0.60),
    ScheduleSignal("going forward", 0.55),
    # Partial recurrence
    ScheduleSignal("on weekdays", 0.60),
    ScheduleSignal("on weekends", 0.60),
    ScheduleSignal("weeknights", 0.60),
    ScheduleSignal(
        r"\bon\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)s?\b",
        0.55,
        is_regex=True,
    ),
)


# =============================================================================
# Complex signals - multi-part, creative, or conflict-prone
# =============================================================================

COMPLEX_SIGNALS: Tuple[ScheduleSignal, ...] = (
    # Multi-day variation
    ScheduleSignal("different each", 0.95),
    ScheduleSignal("different every", 0.95),
    ScheduleSignal("a different", 0.80),
    ScheduleSignal("new design each", 0.90),
    ScheduleSignal("new pattern each", 0.90),
    ScheduleSignal("new look each", 0.85),
    ScheduleSignal("change it up each", 0.85),
    ScheduleSignal("vary", 0.70),
    ScheduleSignal("variety", 0.75),
    ScheduleSignal("mix it up", 0.85),
    ScheduleSignal("rotate", 0.70),
    ScheduleSignal("rotation", 0.75),
    ScheduleSignal("alternate", 0.70),
    ScheduleSignal("alternating", 0.75),
    ScheduleSignal("cycle through", 0.80),
    # Long spans
    ScheduleSignal("all month", 0.80),
    ScheduleSignal("all season", 0.80),
    ScheduleSignal("for a month", 0.75),
    ScheduleSignal("for the month", 0.75),
    ScheduleSignal("for a week", 0.65),
    ScheduleSignal("for the week", 0.65),
    ScheduleSignal(rf"through\s+({MONTH_NAMES})", 0.80, is_regex=True),
    ScheduleSignal(rf"until\s+({MONTH_NAMES})", 0.75, is_regex=True),
    ScheduleSignal("rest of the season", 0.80),
    ScheduleSignal("rest of the month", 0.75),
    # Zones
    ScheduleSignal("front of house", 0.70),
    ScheduleSignal("back of house", 0.70),
    ScheduleSignal("front yard", 0.65),
    ScheduleSignal("backyard", 0.65),
    ScheduleSignal("back yard", 0.65),
    ScheduleSignal("garage", 0.60),
    ScheduleSignal("driveway", 0.60),
    ScheduleSignal("patio", 0.60),
    ScheduleSignal("roofline", 0.55),
    # Conditional logic
    ScheduleSignal("only on", 0.65),
    ScheduleSignal("except", 0.70),
    ScheduleSignal("unless", 0.75),
    ScheduleSignal("but not on", 0.75),
    ScheduleSignal("except on", 0.75),
    ScheduleSignal("except holidays", 0.80),
    ScheduleSignal("only when", 0.75),
    ScheduleSignal("only if", 0.75),
    ScheduleSignal("when it", 0.55),
    ScheduleSignal("if it", 0.50),
    # Generative
    ScheduleSignal("surprise me", 0.80),
    ScheduleSignal("get creative", 0.85),
    ScheduleSignal("pick something", 0.70),
    ScheduleSignal("choose something", 0.70),
    ScheduleSignal("random", 0.65),
    ScheduleSignal("randomize", 0.70),
    # Explicit multi-event language
    ScheduleSignal("multiple", 0.65),
    ScheduleSignal("several", 0.60),
    ScheduleSignal("a bunch", 0.60),
    ScheduleSignal("series", 0.70),
    ScheduleSignal("playlist", 0.75),
    ScheduleSignal("lineup", 0.70),
)


# =============================================================================
# Multi-day indicators
# =============================================================================

MULTI_DAY_SIGNALS: Tuple[ScheduleSignal, ...] = (
    ScheduleSignal("every night", 0.80),
    ScheduleSignal("every evening", 0.80),
    ScheduleSignal("every day", 0.75),
    ScheduleSignal("every morning", 0.75),
    ScheduleSignal("each night", 0.80),
    ScheduleSignal("each day", 0.80),
    ScheduleSignal("each evening", 0.80),
    ScheduleSignal("nightly", 0.75),
    ScheduleSignal("daily", 0.70),
    ScheduleSignal("weekly", 0.85),
    ScheduleSignal("for a week", 0.80),
    ScheduleSignal("for the week", 0.80),
    ScheduleSignal("for a month", 0.90),
    ScheduleSignal("all month", 0.90),
    ScheduleSignal("all season", 0.90),
    ScheduleSignal("all week", 0.85),
    ScheduleSignal(r"\b\d+\s+(days?|nights?|weeks?|months?)\b", 0.85, is_regex=True),
)


# =============================================================================
# Creative indicators
# =============================================================================

CREATIVE_SIGNALS: Tuple[ScheduleSignal, ...] = (
    # Teams (need color lookup)
    ScheduleSignal(r"\b(chiefs?|royals?|sporting\s*kc)\b", 0.90, is_regex=True),
    ScheduleSignal(
        r"\b(lakers?|celtics?|warriors?|bulls?|heat|nets?|knicks?)\b", 0.80, is_regex=True
    ),
    ScheduleSignal(
        r"\b(packers?|cowboys?|steelers?|eagles?|bears?|niners?|49ers?)\b", 0.80, is_regex=True
    ),
    ScheduleSignal(
        r"\b(yankees?|dodgers?|red\s*sox|cubs?|cardinals?|braves?)\b", 0.80, is_regex=True
    ),
    # Holidays
    ScheduleSignal("christmas", 0.75),
    ScheduleSignal("halloween", 0.75),
    ScheduleSignal("valentine", 0.70),
    ScheduleSignal("st patrick", 0.70),
    ScheduleSignal("fourth of july", 0.70),
    ScheduleSignal("4th of july", 0.70),
    ScheduleSignal("independence day", 0.70),
    ScheduleSignal("easter", 0.65),
    ScheduleSignal("hanukkah", 0.70),
    ScheduleSignal("thanksgiving", 0.65),
    ScheduleSignal("new year", 0.65),
    ScheduleSignal("mardi gras", 0.70),
    ScheduleSignal("festive", 0.55),
    ScheduleSignal("holiday", 0.50),
    # Moods that need generation
    ScheduleSignal("cozy", 0.55),
    ScheduleSignal("romantic", 0.55),
    ScheduleSignal("spooky", 0.60),
    ScheduleSignal("patriotic", 0.60),
    ScheduleSignal("elegant", 0.50),
    # Explicit variation
    ScheduleSignal("different", 0.65),
    ScheduleSignal("variety", 0.70),
    ScheduleSignal("creative", 0.75),
    ScheduleSignal("mix it up", 0.80),
    ScheduleSignal("surprise me", 0.80),
    ScheduleSignal("random", 0.60),
    ScheduleSignal("unique", 0.60),
)


# =============================================================================
# Entity dictionaries
# =============================================================================

_CHIEFS = TeamReference("Kansas City Chiefs", "NFL", "KC Chiefs")
_ROYALS = TeamReference("Kansas City Royals", "MLB", "KC Royals")
_SPORTING = TeamReference("Sporting Kansas City", "MLS", "Sporting KC")
_NINERS = TeamReference("San Francisco 49ers", "NFL", "49ers")

KNOWN_TEAMS: Dict[str, TeamReference] = {
    "chiefs": _CHIEFS,
    "kc chiefs": _CHIEFS,
    "kansas city chiefs": _CHIEFS,
    "royals": _ROYALS,
    "kc royals": _ROYALS,
    "kansas city royals": _ROYALS,
    "sporting kc": _SPORTING,
    "sporting": _SPORTING,
    "lakers": TeamReference("Los Angeles Lakers", "NBA", "Lakers"),
    "celtics": TeamReference("Boston Celtics", "NBA", "Celtics"),
    "warriors": TeamReference("Golden State Warriors", "NBA", "Warriors"),
    "bulls": TeamReference("Chicago Bulls", "NBA", "Bulls"),
    "heat": TeamReference("Miami Heat", "NBA", "Heat"),
    "nets": TeamReference("Brooklyn Nets", "NBA", "Nets"),
    "knicks": TeamReference("New York Knicks", "NBA", "Knicks"),
    "packers": TeamReference("Green Bay Packers", "NFL", "Packers"),
    "cowboys": TeamReference("Dallas Cowboys", "NFL", "Cowboys"),
    "steelers": TeamReference("Pittsburgh Steelers", "NFL", "Steelers"),
    "eagles": TeamReference("Philadelphia Eagles", "NFL", "Eagles"),
    "bears": TeamReference("Chicago Bears", "NFL", "Bears"),
    "niners": _NINERS,
    "49ers": _NINERS,
    "yankees": TeamReference("New York Yankees", "MLB", "Yankees"),
    "dodgers": TeamReference("Los Angeles Dodgers", "MLB", "Dodgers"),
    "red sox": TeamReference("Boston Red Sox", "MLB", "Red Sox"),
    "cubs": TeamReference("Chicago Cubs", "MLB", "Cubs"),
    "cardinals": TeamReference("St. Louis Cardinals", "MLB", "Cardinals"),
    "braves": TeamReference("Atlanta Braves", "MLB", "Braves"),
}

KNOWN_HOLIDAYS: Dict[str, str] = {
    "christmas": "Christmas",
    "xmas": "Christmas",
    "halloween": "Halloween",
    "valentine": "Valentine's Day",
    "valentines": "Valentine's Day",
    "valentine's": "Valentine's Day",
    "st patrick": "St. Patrick's Day",
    "st patricks": "St. Patrick's Day",
    "st patrick's": "St. Patrick's Day",
    "fourth of july": "Independence Day",
    "4th of july": "Independence Day",
    "independence day": "Independence Day",
    "easter": "Easter",
    "hanukkah": "Hanukkah",
    "chanukah": "Hanukkah",
    "thanksgiving": "Thanksgiving",
    "new year": "New Year's",
    "new year's": "New Year's",
    "new years": "New Year's",
    "mardi gras": "Mardi Gras",
    "diwali": "Diwali",
    "pride": "Pride",
    "memorial day": "Memorial Day",
    "labor day": "Labor Day",
    "veterans day": "Veterans Day",
}

KNOWN_ZONES: Dict[str, str] = {
    "front": "front",
    "front of house": "front",
    "front yard": "front",
    "front porch": "front",
    "back": "back",
    "back of house": "back",
    "backyard": "back",
    "back yard": "back",
    "rear": "back",
    "garage": "garage",
    "driveway": "driveway",
    "patio": "patio",
    "deck": "patio",
    "roofline": "roofline",
    "roof": "roofline",
    "eaves": "roofline",
    "soffit": "roofline",
    "side": "side",
    "left side": "left",
    "right side": "right",
    "all": "all",
    "everywhere": "all",
    "whole house": "all",
    "entire house": "all",
}

ACTION_KEYWORDS: Dict[str, str] = {
    "turn off": "power_off",
    "shut off": "power_off",
    "lights off": "power_off",
    "switch off": "power_off",
    "power off": "power_off",
    "turn on": "power_on",
    "lights on": "power_on",
    "switch on": "power_on",
    "power on": "power_on",
    "warm white": "warm_white",
    "cool white": "cool_white",
    "candlelight": "candlelight",
    "cancel": "cancel",
    "delete": "delete",
    "remove": "remove",
    "disable": "disable",
    "pause": "pause",
    "stop": "stop",
}

# Action references that mark a request as a cancellation
CANCEL_ACTIONS = frozenset({"cancel", "delete", "remove", "disable"})
