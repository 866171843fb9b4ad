"""Tests for the at-bat outcome classifier and outcome tables."""

import pytest

from mlb_prediction_sync.engine.outcomes import (
    CATEGORY_POINTS,
    EXACT_POINTS,
    Category,
    Outcome,
    category_of,
    classify,
    parse_outcome,
)
from mlb_prediction_sync.feed.models import EventResult


class TestClassifyByCode:
    """The eventType code wins over every other field."""

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("single", Outcome.SINGLE),
            ("home_run", Outcome.HOME_RUN),
            ("strikeout", Outcome.STRIKEOUT),
            ("strike_out", Outcome.STRIKEOUT),
            ("grounded_into_double_play", Outcome.GROUNDED_INTO_DOUBLE_PLAY),
            ("error", Outcome.FIELD_ERROR),
            ("caught_stealing_2b", Outcome.CAUGHT_STEALING),
            ("  Walk ", Outcome.WALK),
        ],
    )
    def test_known_codes(self, code, expected):
        assert classify(EventResult(event_type=code)) == expected

    def test_code_beats_description(self):
        result = EventResult(event_type="field_out", description="Aaron Judge doubles to left")
        assert classify(result) == Outcome.FIELD_OUT


class TestClassifyByEventName:
    def test_event_name_used_when_code_unknown(self):
        result = EventResult(event_type="some_new_code", event="Grounded Into DP")
        assert classify(result) == Outcome.GROUNDED_INTO_DOUBLE_PLAY

    def test_event_name_case_insensitive(self):
        assert classify(EventResult(event="HOME RUN")) == Outcome.HOME_RUN


class TestClassifyByDescription:
    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Aaron Judge strikes out swinging.", Outcome.STRIKEOUT),
            ("Juan Soto called out on strikes.", Outcome.STRIKEOUT),
            ("Anthony Volpe grounds into a double play, shortstop to second to first.", Outcome.GROUNDED_INTO_DOUBLE_PLAY),
            ("Giancarlo Stanton doubles (12) on a line drive to left fielder.", Outcome.DOUBLE),
            ("Gleyber Torres homers (20) on a fly ball to left field.", Outcome.HOME_RUN),
            ("Austin Wells walks.", Outcome.WALK),
            ("Rafael Devers intentionally walks.", Outcome.INTENT_WALK),
            ("Jose Trevino hit by pitch.", Outcome.HIT_BY_PITCH),
            ("Oswaldo Cabrera out on a sacrifice fly to center fielder.", Outcome.SAC_FLY),
            ("DJ LeMahieu reaches on a fielding error by third baseman.", Outcome.FIELD_ERROR),
            ("Alex Verdugo flies out to right fielder.", Outcome.FIELD_OUT),
            ("Jazz Chisholm strikes out swinging and Judge caught stealing 2B, double play.", Outcome.STRIKEOUT_DOUBLE_PLAY),
        ],
    )
    def test_description_rules(self, description, expected):
        assert classify(EventResult(description=description)) == expected

    def test_double_play_is_not_a_double(self):
        result = EventResult(description="Batter grounds into a double play.")
        outcome = classify(result)
        assert outcome != Outcome.DOUBLE
        assert category_of(outcome) == Category.OUT


class TestUnknown:
    def test_none_result(self):
        assert classify(None) == Outcome.UNKNOWN

    def test_empty_result(self):
        assert classify(EventResult()) == Outcome.UNKNOWN

    def test_unmatched_description(self):
        assert classify(EventResult(description="Mound visit.")) == Outcome.UNKNOWN

    def test_unknown_scores_nothing(self):
        assert EXACT_POINTS[Outcome.UNKNOWN] == 0
        assert CATEGORY_POINTS[Category.UNKNOWN] == 0


def test_classify_is_deterministic():
    result = EventResult(description="Aaron Judge singles on a ground ball.")
    assert {classify(result) for _ in range(5)} == {Outcome.SINGLE}


class TestTables:
    def test_every_outcome_has_a_category_and_points(self):
        for outcome in Outcome:
            assert outcome in EXACT_POINTS
            assert category_of(outcome) in CATEGORY_POINTS

    def test_rarer_hits_score_higher(self):
        assert (
            EXACT_POINTS[Outcome.HOME_RUN]
            > EXACT_POINTS[Outcome.TRIPLE]
            > EXACT_POINTS[Outcome.DOUBLE]
            > EXACT_POINTS[Outcome.SINGLE]
            > EXACT_POINTS[Outcome.WALK]
            > EXACT_POINTS[Outcome.FIELD_OUT]
        )

    def test_categories(self):
        assert category_of(Outcome.INTENT_WALK) == Category.WALK
        assert category_of(Outcome.SAC_BUNT) == Category.SACRIFICE
        assert category_of(Outcome.CATCHER_INTERF) == Category.ERROR
        assert category_of(Outcome.PICKOFF) == Category.BASERUNNING


class TestParseOutcome:
    def test_accepts_aliases(self):
        assert parse_outcome("Strike_Out") == Outcome.STRIKEOUT

    def test_unknown_code_raises(self):
        with pytest.raises(ValueError, match="Unknown outcome code"):
            parse_outcome("bloop_single")
