"""External-signal filters applied after scoring (weather, peak hours, traffic)"""
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from tarana.models.context import SearchContext
from tarana.rag import peak_hours
from tarana.rag.scoring import ScoredActivity

logger = logging.getLogger(__name__)

# Activity tags that suit each weather condition; empty means no restriction
WEATHER_TAG_FILTERS: Dict[str, List[str]] = {
    "thunderstorm": ["Indoor-Friendly"],
    "rainy": ["Indoor-Friendly"],
    "snow": ["Indoor-Friendly"],
    "foggy": ["Indoor-Friendly", "Weather-Flexible"],
    "cloudy": ["Outdoor-Friendly", "Weather-Flexible"],
    "clear": ["Outdoor-Friendly"],
    "cold": ["Indoor-Friendly"],
    "default": [],
}

TRAFFIC_LEVELS = ("LOW", "MODERATE", "HIGH", "SEVERE")

TrafficProvider = Callable[[ScoredActivity], Awaitable[Optional[str]]]


class ActivityFilter:
    """Base class: filters get the ranked list and the search context, return a subset in order"""

    name = "filter"

    async def apply(self, ranked: List[ScoredActivity], context: SearchContext) -> List[ScoredActivity]:
        raise NotImplementedError


class WeatherFilter(ActivityFilter):
    """Keep activities tagged for the current weather condition"""

    name = "weather"

    async def apply(self, ranked, context):
        allowed = WEATHER_TAG_FILTERS.get(context.weather_condition.lower(), [])
        if not allowed:
            return list(ranked)
        kept = [s for s in ranked if any(tag in allowed for tag in s.activity.tags)]
        logger.info(f"Weather filter ({context.weather_condition}): kept {len(kept)}/{len(ranked)}")
        return kept


class PeakHoursFilter(ActivityFilter):
    """Drop activities currently inside their declared peak hours"""

    name = "peak_hours"

    def __init__(self, timezone: str = "Asia/Manila"):
        self.timezone = timezone

    async def apply(self, ranked, context):
        if context.current_time is not None:
            now = peak_hours.to_local(context.current_time, self.timezone)
        else:
            now = peak_hours.local_now(self.timezone)
        kept = [s for s in ranked if not peak_hours.is_peak(s.activity.peak_hours, now)]
        logger.info(f"Peak hours filter at {now:%H:%M}: kept {len(kept)}/{len(ranked)}")
        return kept


class TrafficFilter(ActivityFilter):
    """
    Drop activities whose current traffic level is above max_level.

    The provider is an external traffic service returning one of
    LOW / MODERATE / HIGH / SEVERE (or None when unknown). Unknown levels are kept.
    """

    name = "traffic"

    def __init__(self, provider: TrafficProvider, max_level: str = "MODERATE"):
        if max_level not in TRAFFIC_LEVELS:
            raise ValueError(f"max_level must be one of {TRAFFIC_LEVELS}")
        self.provider = provider
        self.max_level = max_level

    async def apply(self, ranked, context):
        limit = TRAFFIC_LEVELS.index(self.max_level)
        kept = []
        for scored in ranked:
            level = await self.provider(scored)
            if level is None or level.upper() not in TRAFFIC_LEVELS:
                kept.append(scored)
            elif TRAFFIC_LEVELS.index(level.upper()) <= limit:
                kept.append(scored)
            else:
                logger.debug(f"Traffic filter dropped {scored.activity_id} ({level})")
        logger.info(f"Traffic filter (max {self.max_level}): kept {len(kept)}/{len(ranked)}")
        return kept
