"""Canonical at-bat outcomes and the classifier that produces them.

Outcome values are the upstream ``eventType`` codes. Classification tries, in
order: exact code lookup, exact event-name lookup, ordered description rules,
and finally ``Outcome.UNKNOWN``. Classification never raises; an ambiguous
play is simply unknown, scores zero, and still resolves.

Example:
    >>> classify(EventResult(description="Aaron Judge strikes out swinging."))
    <Outcome.STRIKEOUT: 'strikeout'>
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mlb_prediction_sync.feed.models import EventResult


class Outcome(str, Enum):
    """Canonical result of a completed at-bat."""

    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    HOME_RUN = "home_run"

    WALK = "walk"
    INTENT_WALK = "intent_walk"
    HIT_BY_PITCH = "hit_by_pitch"

    STRIKEOUT = "strikeout"
    STRIKEOUT_DOUBLE_PLAY = "strikeout_double_play"
    STRIKEOUT_TRIPLE_PLAY = "strikeout_triple_play"
    FIELD_OUT = "field_out"
    FORCE_OUT = "force_out"
    FIELDERS_CHOICE = "fielders_choice"
    FIELDERS_CHOICE_OUT = "fielders_choice_out"
    GROUNDED_INTO_DOUBLE_PLAY = "grounded_into_double_play"
    GROUNDED_INTO_TRIPLE_PLAY = "grounded_into_triple_play"
    DOUBLE_PLAY = "double_play"
    TRIPLE_PLAY = "triple_play"

    SAC_FLY = "sac_fly"
    SAC_BUNT = "sac_bunt"
    SAC_FLY_DOUBLE_PLAY = "sac_fly_double_play"
    SAC_BUNT_DOUBLE_PLAY = "sac_bunt_double_play"

    FIELD_ERROR = "field_error"
    CATCHER_INTERF = "catcher_interf"
    BATTER_INTERFERENCE = "batter_interference"
    FAN_INTERFERENCE = "fan_interference"

    # Plays that can end a plate appearance without the batter finishing it
    CAUGHT_STEALING = "caught_stealing"
    PICKOFF = "pickoff"
    RUNNER_DOUBLE_PLAY = "runner_double_play"
    OTHER_OUT = "other_out"

    UNKNOWN = "unknown"


class Category(str, Enum):
    """Coarse grouping used by category-mode predictions."""

    HIT = "hit"
    WALK = "walk"
    HIT_BY_PITCH = "hit_by_pitch"
    OUT = "out"
    SACRIFICE = "sacrifice"
    ERROR = "error"
    BASERUNNING = "baserunning"
    UNKNOWN = "unknown"


_CATEGORY_MEMBERS: dict[Category, tuple[Outcome, ...]] = {
    Category.HIT: (Outcome.SINGLE, Outcome.DOUBLE, Outcome.TRIPLE, Outcome.HOME_RUN),
    Category.WALK: (Outcome.WALK, Outcome.INTENT_WALK),
    Category.HIT_BY_PITCH: (Outcome.HIT_BY_PITCH,),
    Category.OUT: (
        Outcome.STRIKEOUT,
        Outcome.STRIKEOUT_DOUBLE_PLAY,
        Outcome.STRIKEOUT_TRIPLE_PLAY,
        Outcome.FIELD_OUT,
        Outcome.FORCE_OUT,
        Outcome.FIELDERS_CHOICE,
        Outcome.FIELDERS_CHOICE_OUT,
        Outcome.GROUNDED_INTO_DOUBLE_PLAY,
        Outcome.GROUNDED_INTO_TRIPLE_PLAY,
        Outcome.DOUBLE_PLAY,
        Outcome.TRIPLE_PLAY,
    ),
    Category.SACRIFICE: (
        Outcome.SAC_FLY,
        Outcome.SAC_BUNT,
        Outcome.SAC_FLY_DOUBLE_PLAY,
        Outcome.SAC_BUNT_DOUBLE_PLAY,
    ),
    Category.ERROR: (
        Outcome.FIELD_ERROR,
        Outcome.CATCHER_INTERF,
        Outcome.BATTER_INTERFERENCE,
        Outcome.FAN_INTERFERENCE,
    ),
    Category.BASERUNNING: (
        Outcome.CAUGHT_STEALING,
        Outcome.PICKOFF,
        Outcome.RUNNER_DOUBLE_PLAY,
        Outcome.OTHER_OUT,
    ),
    Category.UNKNOWN: (Outcome.UNKNOWN,),
}

OUTCOME_CATEGORY: dict[Outcome, Category] = {
    outcome: category
    for category, members in _CATEGORY_MEMBERS.items()
    for outcome in members
}

# Points for an exact outcome match. Rarer outcomes score higher.
EXACT_POINTS: dict[Outcome, int] = {
    Outcome.HOME_RUN: 6,
    Outcome.TRIPLE: 5,
    Outcome.DOUBLE: 4,
    Outcome.SINGLE: 3,
    Outcome.WALK: 2,
    Outcome.INTENT_WALK: 2,
    Outcome.HIT_BY_PITCH: 2,
    Outcome.STRIKEOUT: 2,
}
for _outcome, _category in OUTCOME_CATEGORY.items():
    if _outcome not in EXACT_POINTS:
        EXACT_POINTS[_outcome] = 0 if _category in (Category.BASERUNNING, Category.UNKNOWN) else 1

# Partial credit when only the predicted category matches.
CATEGORY_POINTS: dict[Category, int] = {
    Category.HIT: 2,
    Category.WALK: 2,
    Category.HIT_BY_PITCH: 2,
    Category.OUT: 1,
    Category.SACRIFICE: 1,
    Category.ERROR: 1,
    Category.BASERUNNING: 0,
    Category.UNKNOWN: 0,
}

# Upstream eventType codes that do not share a name with an Outcome value
_CODE_ALIASES: dict[str, Outcome] = {
    "strike_out": Outcome.STRIKEOUT,
    "error": Outcome.FIELD_ERROR,
    "caught_stealing_2b": Outcome.CAUGHT_STEALING,
    "caught_stealing_3b": Outcome.CAUGHT_STEALING,
    "caught_stealing_home": Outcome.CAUGHT_STEALING,
    "cs_double_play": Outcome.CAUGHT_STEALING,
    "pickoff_1b": Outcome.PICKOFF,
    "pickoff_2b": Outcome.PICKOFF,
    "pickoff_3b": Outcome.PICKOFF,
    "pickoff_caught_stealing_2b": Outcome.PICKOFF,
    "pickoff_caught_stealing_3b": Outcome.PICKOFF,
    "pickoff_caught_stealing_home": Outcome.PICKOFF,
}

EVENT_CODE_MAP: dict[str, Outcome] = {
    **{outcome.value: outcome for outcome in Outcome if outcome is not Outcome.UNKNOWN},
    **_CODE_ALIASES,
}

# Human-readable ``result.event`` names as the feed spells them
EVENT_NAME_MAP: dict[str, Outcome] = {
    "single": Outcome.SINGLE,
    "double": Outcome.DOUBLE,
    "triple": Outcome.TRIPLE,
    "home run": Outcome.HOME_RUN,
    "walk": Outcome.WALK,
    "intent walk": Outcome.INTENT_WALK,
    "intentional walk": Outcome.INTENT_WALK,
    "hit by pitch": Outcome.HIT_BY_PITCH,
    "strikeout": Outcome.STRIKEOUT,
    "strikeout double play": Outcome.STRIKEOUT_DOUBLE_PLAY,
    "strikeout - dp": Outcome.STRIKEOUT_DOUBLE_PLAY,
    "strikeout triple play": Outcome.STRIKEOUT_TRIPLE_PLAY,
    "groundout": Outcome.FIELD_OUT,
    "flyout": Outcome.FIELD_OUT,
    "fly out": Outcome.FIELD_OUT,
    "lineout": Outcome.FIELD_OUT,
    "pop out": Outcome.FIELD_OUT,
    "bunt groundout": Outcome.FIELD_OUT,
    "bunt pop out": Outcome.FIELD_OUT,
    "bunt lineout": Outcome.FIELD_OUT,
    "forceout": Outcome.FORCE_OUT,
    "fielders choice": Outcome.FIELDERS_CHOICE,
    "fielders choice out": Outcome.FIELDERS_CHOICE_OUT,
    "grounded into dp": Outcome.GROUNDED_INTO_DOUBLE_PLAY,
    "grounded into tp": Outcome.GROUNDED_INTO_TRIPLE_PLAY,
    "double play": Outcome.DOUBLE_PLAY,
    "triple play": Outcome.TRIPLE_PLAY,
    "sac fly": Outcome.SAC_FLY,
    "sac bunt": Outcome.SAC_BUNT,
    "sac fly double play": Outcome.SAC_FLY_DOUBLE_PLAY,
    "sac bunt double play": Outcome.SAC_BUNT_DOUBLE_PLAY,
    "field error": Outcome.FIELD_ERROR,
    "catcher interference": Outcome.CATCHER_INTERF,
    "batter interference": Outcome.BATTER_INTERFERENCE,
    "fan interference": Outcome.FAN_INTERFERENCE,
    "caught stealing 2b": Outcome.CAUGHT_STEALING,
    "caught stealing 3b": Outcome.CAUGHT_STEALING,
    "caught stealing home": Outcome.CAUGHT_STEALING,
    "pickoff 1b": Outcome.PICKOFF,
    "pickoff 2b": Outcome.PICKOFF,
    "pickoff 3b": Outcome.PICKOFF,
    "runner out": Outcome.OTHER_OUT,
}

# Ordered description rules: every substring in a rule must be present, first
# match wins. Multi-out plays come before base hits so "grounds into a double
# play" is never read as a double.
DESCRIPTION_RULES: tuple[tuple[tuple[str, ...], Outcome], ...] = (
    (("strikes out", "triple play"), Outcome.STRIKEOUT_TRIPLE_PLAY),
    (("strikes out", "double play"), Outcome.STRIKEOUT_DOUBLE_PLAY),
    (("grounds into a triple play",), Outcome.GROUNDED_INTO_TRIPLE_PLAY),
    (("triple play",), Outcome.TRIPLE_PLAY),
    (("grounds into a double play",), Outcome.GROUNDED_INTO_DOUBLE_PLAY),
    (("sacrifice fly", "double play"), Outcome.SAC_FLY_DOUBLE_PLAY),
    (("sacrifice bunt", "double play"), Outcome.SAC_BUNT_DOUBLE_PLAY),
    (("double play",), Outcome.DOUBLE_PLAY),
    (("intentionally walks",), Outcome.INTENT_WALK),
    (("hit by pitch",), Outcome.HIT_BY_PITCH),
    (("hit by a pitch",), Outcome.HIT_BY_PITCH),
    (("strikes out",), Outcome.STRIKEOUT),
    (("called out on strikes",), Outcome.STRIKEOUT),
    (("out on strikes",), Outcome.STRIKEOUT),
    (("sacrifice fly",), Outcome.SAC_FLY),
    (("sacrifice bunt",), Outcome.SAC_BUNT),
    (("homers",), Outcome.HOME_RUN),
    (("home run",), Outcome.HOME_RUN),
    (("grand slam",), Outcome.HOME_RUN),
    (("triples",), Outcome.TRIPLE),
    (("ground-rule double",), Outcome.DOUBLE),
    (("doubles",), Outcome.DOUBLE),
    (("singles",), Outcome.SINGLE),
    (("walks",), Outcome.WALK),
    (("fielder's choice out",), Outcome.FIELDERS_CHOICE_OUT),
    (("fielder's choice",), Outcome.FIELDERS_CHOICE),
    (("force out",), Outcome.FORCE_OUT),
    (("forceout",), Outcome.FORCE_OUT),
    (("catcher interference",), Outcome.CATCHER_INTERF),
    (("fan interference",), Outcome.FAN_INTERFERENCE),
    (("error",), Outcome.FIELD_ERROR),
    (("grounds out",), Outcome.FIELD_OUT),
    (("flies out",), Outcome.FIELD_OUT),
    (("lines out",), Outcome.FIELD_OUT),
    (("pops out",), Outcome.FIELD_OUT),
    (("fouls out",), Outcome.FIELD_OUT),
    (("caught stealing",), Outcome.CAUGHT_STEALING),
    (("picked off",), Outcome.PICKOFF),
)


def classify(result: "EventResult | None") -> Outcome:
    """Classify a completed event's result payload.

    Args:
        result: Typed result block of a completed play (may be None)

    Returns:
        The canonical Outcome. UNKNOWN when nothing matches.
    """
    if result is None:
        return Outcome.UNKNOWN

    if result.event_type:
        outcome = EVENT_CODE_MAP.get(result.event_type.strip().lower())
        if outcome is not None:
            return outcome

    if result.event:
        outcome = EVENT_NAME_MAP.get(result.event.strip().lower())
        if outcome is not None:
            return outcome

    if result.description:
        description = result.description.lower()
        for needles, outcome in DESCRIPTION_RULES:
            if all(needle in description for needle in needles):
                return outcome

    return Outcome.UNKNOWN


def category_of(outcome: Outcome) -> Category:
    """Return the coarse category for an outcome."""
    return OUTCOME_CATEGORY.get(outcome, Category.UNKNOWN)


def parse_outcome(value: str) -> Outcome:
    """Parse a user-supplied outcome code, accepting upstream aliases.

    Raises:
        ValueError: If the code is not a known outcome
    """
    normalized = value.strip().lower()
    if normalized == Outcome.UNKNOWN.value:
        return Outcome.UNKNOWN
    try:
        return EVENT_CODE_MAP[normalized]
    except KeyError:
        raise ValueError(f"Unknown outcome code: {value!r}") from None
