"""Scoring rules: at-bat points, streak bonuses, and pitcher-line partial credit.

Pure functions only. The resolver gathers the inputs (pending prediction,
recent history) and persists what these return.
"""

from dataclasses import dataclass
from typing import Any, Iterable

from mlb_prediction_sync.engine.models import PitcherPrediction, Prediction
from mlb_prediction_sync.engine.outcomes import (
    CATEGORY_POINTS,
    EXACT_POINTS,
    Outcome,
    category_of,
)

# (minimum streak length, bonus) from highest to lowest
STREAK_STEPS: tuple[tuple[int, int], ...] = ((10, 10), (7, 7), (5, 5), (3, 3), (2, 1))

# Pitcher-line scoring tables: {absolute miss: points}
INNINGS_OUTS_POINTS = {0: 6, 1: 4, 2: 2, 3: 1}
HITS_POINTS = {0: 4, 1: 2, 2: 1}
EARNED_RUNS_POINTS = {0: 4, 1: 2, 2: 1}
WALKS_POINTS = {0: 3, 1: 1}
STRIKEOUTS_POINTS = {0: 3, 1: 1}

MAX_PITCHER_POINTS = 20


@dataclass(frozen=True)
class AtBatScore:
    """Score for one at-bat prediction."""

    is_correct: bool
    is_partial_credit: bool
    base_points: int
    streak_count: int
    streak_bonus: int

    @property
    def points_earned(self) -> int:
        return self.base_points + self.streak_bonus


def streak_bonus(streak_length: int) -> int:
    """Bonus points for a streak of the given length (including the current pick)."""
    for minimum, bonus in STREAK_STEPS:
        if streak_length >= minimum:
            return bonus
    return 0


def current_streak(history: Iterable[Any]) -> int:
    """Count consecutive correct predictions, newest first.

    Args:
        history: Resolved predictions ordered newest first; anything with an
            ``is_correct`` attribute

    Returns:
        Length of the unbroken run of correct predictions at the head
    """
    streak = 0
    for prediction in history:
        if not prediction.is_correct:
            break
        streak += 1
    return streak


def score_at_bat(prediction: Prediction, actual: Outcome, streak_before: int) -> AtBatScore:
    """Score a prediction against the actual outcome.

    An exact match earns the outcome's points. Otherwise, if the user also
    picked a category and it matches, the category's partial credit is
    earned. UNKNOWN never matches anything.

    Args:
        prediction: Pending prediction
        actual: Classified outcome of the at-bat
        streak_before: User's streak before this prediction

    Returns:
        AtBatScore with the streak after this prediction
    """
    if actual is Outcome.UNKNOWN:
        return AtBatScore(False, False, 0, 0, 0)

    actual_category = category_of(actual)

    if prediction.prediction == actual:
        base, partial = EXACT_POINTS[actual], False
    elif prediction.prediction_category is not None and prediction.prediction_category == actual_category:
        base, partial = CATEGORY_POINTS[actual_category], True
    else:
        return AtBatScore(False, False, 0, 0, 0)

    streak = streak_before + 1
    return AtBatScore(True, partial, base, streak, streak_bonus(streak))


def innings_to_outs(innings: Any) -> int:
    """Convert innings in baseball notation to outs recorded.

    "6.2" means six innings and two outs, i.e. 20 outs.

    Args:
        innings: Innings as string or number (e.g. "6.2", 5.1, 7)

    Returns:
        Outs recorded, 0 for unparseable input
    """
    if innings is None:
        return 0
    text = str(innings).strip()
    if not text:
        return 0
    whole, _, partial = text.partition(".")
    try:
        outs = int(whole or 0) * 3
        if partial:
            outs += min(int(partial[0]), 2)
    except ValueError:
        return 0
    return outs


def _tiered(table: dict[int, int], predicted: int, actual: int) -> int:
    return table.get(abs(predicted - actual), 0)


def score_pitcher_line(
    prediction: PitcherPrediction,
    outs: int,
    hits: int,
    earned_runs: int,
    walks: int,
    strikeouts: int,
) -> int:
    """Distance-based partial credit across the five stat fields.

    Returns:
        Points from 0 to MAX_PITCHER_POINTS
    """
    return (
        _tiered(INNINGS_OUTS_POINTS, prediction.predicted_outs, outs)
        + _tiered(HITS_POINTS, prediction.predicted_hits, hits)
        + _tiered(EARNED_RUNS_POINTS, prediction.predicted_earned_runs, earned_runs)
        + _tiered(WALKS_POINTS, prediction.predicted_walks, walks)
        + _tiered(STRIKEOUTS_POINTS, prediction.predicted_strikeouts, strikeouts)
    )
