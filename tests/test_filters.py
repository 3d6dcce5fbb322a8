from datetime import datetime

import pytest

from tarana.models.context import SearchContext
from tarana.rag.filters import PeakHoursFilter, TrafficFilter, WeatherFilter
from tarana.rag.scoring import ScoreBreakdown, ScoredActivity


@pytest.fixture
def ranked(catalog):
    return [
        ScoredActivity(activity_id=a.title, activity=a, similarity=0.5, scores=ScoreBreakdown(composite=0.5))
        for a in catalog
    ]


def _ids(items):
    return [s.activity_id for s in items]


@pytest.mark.asyncio
async def test_weather_filter_keeps_indoor_on_rainy_days(ranked):
    kept = await WeatherFilter().apply(ranked, SearchContext(weather_condition="rainy"))

    assert _ids(kept) == ["Baguio Cathedral"]


@pytest.mark.asyncio
async def test_weather_filter_clear_keeps_outdoor_in_order(ranked):
    kept = await WeatherFilter().apply(ranked, SearchContext(weather_condition="Clear"))

    assert _ids(kept) == ["Burnham Park", "Night Market"]


@pytest.mark.asyncio
@pytest.mark.parametrize("condition", ["default", "hurricane-ish"])
async def test_weather_filter_without_rule_keeps_everything(ranked, condition):
    kept = await WeatherFilter().apply(ranked, SearchContext(weather_condition=condition))

    assert _ids(kept) == _ids(ranked)


@pytest.mark.asyncio
async def test_peak_hours_filter_drops_busy_activities(ranked):
    context = SearchContext(current_time=datetime(2025, 3, 4, 10, 30))

    kept = await PeakHoursFilter().apply(ranked, context)

    assert _ids(kept) == ["Baguio Cathedral", "Night Market"]


@pytest.mark.asyncio
async def test_peak_hours_filter_late_night(ranked):
    context = SearchContext(current_time=datetime(2025, 3, 4, 22, 0))

    kept = await PeakHoursFilter().apply(ranked, context)

    assert _ids(kept) == ["Burnham Park", "Baguio Cathedral"]


@pytest.mark.asyncio
async def test_traffic_filter_drops_levels_above_max(ranked):
    levels = {"Burnham Park": "HIGH", "Baguio Cathedral": "low", "Night Market": None}

    async def provider(scored):
        return levels[scored.activity_id]

    kept = await TrafficFilter(provider, max_level="MODERATE").apply(ranked, SearchContext())

    assert _ids(kept) == ["Baguio Cathedral", "Night Market"]


@pytest.mark.asyncio
async def test_traffic_filter_keeps_unknown_levels(ranked):
    async def provider(scored):
        return "GRIDLOCK"

    kept = await TrafficFilter(provider, max_level="LOW").apply(ranked, SearchContext())

    assert len(kept) == len(ranked)


def test_traffic_filter_rejects_invalid_max_level():
    async def provider(scored):
        return None

    with pytest.raises(ValueError):
        TrafficFilter(provider, max_level="BUMPER")
