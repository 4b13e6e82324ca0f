"""
Tests for per-day context and cached summaries.
"""
from datetime import date

import pytest

from bujo.core.errors import ValidationError
from bujo.domain.summary import SummaryHorizon, horizon_range
from bujo.repositories.day_contexts import DayContextRepository
from bujo.services import day_context as ctx
from bujo.services import entries as entry_service
from bujo.services import summaries

D6 = date(2026, 1, 6)
D7 = date(2026, 1, 7)


class TestDayContext:
    def test_fields_are_independent(self, db):
        ctx.set_location(db, D6, "Home")
        ctx.set_mood(db, D6, "calm")
        context = ctx.set_weather(db, D6, "rain")
        assert (context.location, context.mood, context.weather) == ("Home", "calm", "rain")

    def test_one_current_row_per_day(self, db):
        first = ctx.set_location(db, D6, "Home")
        second = ctx.set_location(db, D6, "Office")
        assert first.entity_id == second.entity_id
        history = DayContextRepository(db).get_history(first.entity_id)
        assert [h.location for h in history] == ["Home", "Office"]

    def test_setting_same_value_is_a_no_op(self, db):
        first = ctx.set_mood(db, D6, "calm")
        again = ctx.set_mood(db, D6, "calm")
        assert again.row_id == first.row_id

    def test_clear_keeps_row(self, db):
        ctx.set_location(db, D6, "Home")
        cleared = ctx.clear_location(db, D6)
        assert cleared.location is None
        assert ctx.get_day_context(db, D6) is not None

    def test_clear_without_context(self, db):
        assert ctx.clear_mood(db, D6) is None
        assert ctx.get_day_context(db, D6) is None

    def test_blank_value(self, db):
        with pytest.raises(ValidationError):
            ctx.set_weather(db, D6, "  ")

    def test_range(self, db):
        ctx.set_mood(db, D7, "tired")
        ctx.set_mood(db, D6, "calm")
        assert [c.day for c in ctx.get_day_contexts(db, D6, D7)] == [D6, D7]
        with pytest.raises(ValidationError):
            ctx.get_day_contexts(db, D7, D6)


class TestHorizonRange:
    def test_weekly_starts_monday(self):
        assert horizon_range(SummaryHorizon.weekly, D7) == (date(2026, 1, 5), date(2026, 1, 11))

    def test_quarterly(self):
        assert horizon_range(SummaryHorizon.quarterly, date(2026, 11, 3)) == (
            date(2026, 10, 1),
            date(2026, 12, 31),
        )
        assert horizon_range(SummaryHorizon.quarterly, date(2026, 2, 14)) == (
            date(2026, 1, 1),
            date(2026, 3, 31),
        )

    def test_annual(self):
        assert horizon_range(SummaryHorizon.annual, D6) == (date(2026, 1, 1), date(2026, 12, 31))


class TestSummaries:
    def test_without_generator_nothing_is_cached(self, db):
        assert summaries.get_summary(db, SummaryHorizon.daily, D6) is None

    def test_generated_once_then_cached(self, db):
        entry_service.log_entries(db, ". one\n- two", D6)
        calls = []

        def generator(entries, horizon):
            calls.append(len(entries))
            return f"{len(entries)} entries ({horizon.value})"

        first = summaries.get_summary(db, SummaryHorizon.daily, D6, generator)
        again = summaries.get_summary(db, SummaryHorizon.daily, D6, generator)
        assert first.content == "2 entries (daily)"
        assert again.row_id == first.row_id
        assert calls == [2]
        # a reader without a generator still sees the cached text
        assert summaries.get_summary(db, SummaryHorizon.daily, D6).content == first.content

    def test_refresh(self, db):
        summaries.get_summary(db, SummaryHorizon.daily, D6, lambda e, h: "old")
        fresh = summaries.get_summary(db, SummaryHorizon.daily, D6, lambda e, h: "new", refresh=True)
        assert fresh.content == "new"
        assert summaries.get_summary(db, SummaryHorizon.daily, D6).content == "new"
        assert len(summaries.list_summaries(db, SummaryHorizon.daily)) == 2
