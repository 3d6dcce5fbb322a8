"""
Multi-dimensional activity scoring.

Turns vector similarity plus contextual signals into one ranking value per
candidate activity. Dimensions:

- vector:     cosine similarity returned by the vector store
- content:    direct containment of the query in title / tags / description
- fuzzy:      token and substring closeness of the query to title / description
- contextual: interests, weather, time of day, budget and group size fit
- temporal:   peak-hours avoidance, time-of-day alignment and trip duration
- diversity:  penalty for overlap with already-selected higher-ranked picks

Weights are normalized to sum to 1 when the config is built, so the
composite stays on the same 0-1 scale as the individual dimensions.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from fuzzywuzzy import fuzz
from pydantic import BaseModel, Field, model_validator

from tarana.models.activity import Activity, SimilarityResult
from tarana.models.context import SearchContext
from tarana.rag import peak_hours

logger = logging.getLogger(__name__)

DIMENSIONS = ("vector", "content", "fuzzy", "contextual", "temporal", "diversity")


class ScoringWeights(BaseModel):
    """Relative emphasis per dimension; normalized to sum to 1 on construction"""
    vector: float = Field(0.40, ge=0)
    content: float = Field(0.25, ge=0)
    fuzzy: float = Field(0.20, ge=0)
    contextual: float = Field(0.20, ge=0)
    temporal: float = Field(0.15, ge=0)
    diversity: float = Field(0.05, ge=0)

    @model_validator(mode="after")
    def normalize(self):
        total = sum(getattr(self, name) for name in DIMENSIONS)
        if total <= 0:
            raise ValueError("At least one scoring weight must be positive")
        for name in DIMENSIONS:
            setattr(self, name, getattr(self, name) / total)
        return self

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in DIMENSIONS}


class ScorerConfig(BaseModel):
    """Scorer configuration"""
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    enable_fuzzy_matching: bool = True
    enable_contextual_analysis: bool = True
    enable_temporal_optimization: bool = True
    enable_diversity_boost: bool = True
    max_results: int = Field(50, ge=1)
    min_score: float = Field(0.1, ge=0)
    timezone: str = "Asia/Manila"


class ScoreBreakdown(BaseModel):
    vector: float = 0.0
    content: float = 0.0
    fuzzy: float = 0.0
    contextual: float = 0.0
    temporal: float = 0.0
    diversity: float = 0.0
    composite: float = 0.0

    def components(self) -> List[float]:
        return [getattr(self, name) for name in DIMENSIONS]


class ScoredActivity(BaseModel):
    """Candidate activity with its per-dimension breakdown and final score"""
    activity_id: str
    activity: Activity
    similarity: float
    scores: ScoreBreakdown
    confidence: float = 0.0
    reasoning: List[str] = Field(default_factory=list)
    matched_terms: List[str] = Field(default_factory=list)
    context_factors: List[str] = Field(default_factory=list)
    temporal_factors: List[str] = Field(default_factory=list)

    @property
    def composite(self) -> float:
        return self.scores.composite


class FuzzyMatcher:
    """String closeness between a query and activity text"""

    @staticmethod
    def score(query: str, target: str) -> float:
        q = query.lower().strip()
        t = target.lower().strip()
        if not q or not t:
            return 0.0

        if q == t:
            return 1.0

        # Containment lands in [0.6, 0.9), shorter targets score higher
        if q in t:
            return 0.9 - (len(t) - len(q)) / len(t) * 0.3

        partial = fuzz.partial_ratio(q, t) / 100
        ratio = fuzz.ratio(q, t) / 100
        tokens = fuzz.token_set_ratio(q, t) / 100
        return min(0.9, partial * 0.4 + ratio * 0.3 + tokens * 0.3)


class ContextualAnalyzer:
    """Overlap between user interests/constraints and activity metadata"""

    INTEREST_KEYWORDS = {
        "Nature & Scenery": ["nature", "scenery", "view", "mountain", "park", "garden", "outdoor", "landscape", "scenic"],
        "Food & Culinary": ["food", "eat", "restaurant", "cuisine", "dining", "taste", "local", "delicacy", "market"],
        "Culture & Arts": ["culture", "art", "museum", "heritage", "history", "traditional", "gallery", "craft"],
        "Shopping & Local Finds": ["shop", "market", "buy", "souvenir", "local", "handicraft", "store", "mall"],
        "Adventure": ["adventure", "hiking", "trail", "climb", "explore", "trek", "outdoor", "activity"],
    }

    WEATHER_KEYWORDS = {
        "rainy": ["indoor", "covered", "shelter", "mall", "museum", "gallery"],
        "sunny": ["outdoor", "park", "garden", "view", "hiking", "trail"],
        "clear": ["outdoor", "park", "garden", "view", "hiking", "trail"],
        "cold": ["warm", "indoor", "hot", "cozy", "shelter"],
        "cloudy": ["flexible", "indoor", "outdoor", "covered"],
    }

    TIME_KEYWORDS = {
        "morning": ["sunrise", "early", "fresh", "quiet", "peaceful"],
        "afternoon": ["lunch", "busy", "active", "warm"],
        "evening": ["sunset", "dinner", "night", "romantic", "calm"],
    }

    PREMIUM_CUES = ("premium", "luxury", "fine dining", "exclusive")

    @classmethod
    def analyze(cls, query: str, activity: Activity, context: SearchContext) -> Tuple[float, List[str]]:
        factors = []
        score = 0.0

        query_lower = query.lower()
        title = activity.title.lower()
        desc = activity.desc.lower()
        tags = [t.lower() for t in activity.tags]

        for interest in context.interests:
            keywords = cls.INTEREST_KEYWORDS.get(interest) or [interest.lower()]
            matches = [
                k for k in keywords
                if k in query_lower or k in title or k in desc or any(k in tag for tag in tags)
            ]
            if matches:
                score += len(matches) / len(keywords) * 0.3
                factors.append(f"Interest match: {interest} ({len(matches)} keywords)")

        weather_keywords = cls.WEATHER_KEYWORDS.get(context.weather_condition.lower(), [])
        weather_matches = [k for k in weather_keywords if k in desc or any(k in tag for tag in tags)]
        if weather_matches:
            score += len(weather_matches) / len(weather_keywords) * 0.2
            factors.append(f"Weather appropriate: {context.weather_condition} ({len(weather_matches)} matches)")

        time_keywords = cls.TIME_KEYWORDS.get(context.time_of_day, [])
        time_matches = [k for k in time_keywords if k in title or k in desc]
        if time_matches:
            score += len(time_matches) / len(time_keywords) * 0.15
            factors.append(f"Time relevance: {context.time_of_day} ({len(time_matches)} matches)")

        budget_score = cls.budget_score(activity, context.budget)
        score += budget_score * 0.2
        if budget_score >= 0.7:
            factors.append(f"Budget appropriate: {context.budget}")

        group_score = cls.group_size_score(activity, context.group_size)
        score += group_score * 0.15
        if group_score >= 0.8:
            factors.append(f"Group size appropriate: {context.group_size} people")

        return min(score, 1.0), factors

    @classmethod
    def budget_score(cls, activity: Activity, budget: str) -> float:
        desc = activity.desc.lower()
        premium = any(cue in desc for cue in cls.PREMIUM_CUES)
        if budget == "budget":
            if "free" in desc:
                return 1.0
            return 0.3 if premium else 0.7
        if budget == "mid-range":
            return 0.8
        if budget == "luxury":
            return 1.0 if premium else 0.6
        return 0.5

    @staticmethod
    def group_size_score(activity: Activity, group_size: int) -> float:
        desc = activity.desc.lower()
        tags = activity.tags
        if group_size == 1:
            return 1.0 if "solo" in desc or "Solo-friendly" in tags else 0.7
        if group_size == 2:
            return 1.0 if "couple" in desc or "Romantic" in tags else 0.8
        if group_size <= 5:
            return 1.0 if "Family-friendly" in tags else 0.8
        return 1.0 if "Group-friendly" in tags or "group" in desc else 0.6


class TemporalScorer:
    """Peak-hours avoidance plus time-of-day and trip-duration fit"""

    TIME_MAP = {
        "morning": ["am", "morning", "6:00", "7:00", "8:00", "9:00", "10:00", "11:00"],
        "afternoon": ["pm", "afternoon", "12:00", "1:00", "2:00", "3:00", "4:00", "5:00"],
        "evening": ["evening", "night", "6:00 pm", "7:00 pm", "8:00 pm", "9:00 pm"],
    }

    @classmethod
    def score(cls, activity: Activity, context: SearchContext, now: datetime) -> Tuple[float, List[str]]:
        factors = []
        score = 0.0

        if activity.peak_hours:
            if peak_hours.is_peak(activity.peak_hours, now):
                score -= 0.3
                factors.append("Currently in peak hours")
            else:
                score += 0.4
                factors.append("Currently outside peak hours")
        else:
            score += 0.2
            factors.append("No peak hour restrictions")

        alignment = cls.time_alignment(activity.time, context.time_of_day)
        score += alignment * 0.3
        if alignment > 0.5:
            factors.append(f"Good time alignment: {context.time_of_day}")

        duration = cls.duration_score(context.duration_days)
        score += duration * 0.3
        if duration > 0.5:
            factors.append(f"Duration appropriate: {context.duration_days} days")

        return max(0.0, min(score, 1.0)), factors

    @classmethod
    def time_alignment(cls, activity_time: str, preferred: str) -> float:
        if preferred == "anytime":
            return 0.5
        keywords = cls.TIME_MAP.get(preferred, [])
        time_lower = activity_time.lower()
        matches = sum(1 for k in keywords if k in time_lower)
        if not matches:
            return 0.3
        return min(matches / len(keywords) * 2, 1.0)

    @staticmethod
    def duration_score(duration_days: int) -> float:
        if duration_days >= 3:
            return 1.0
        if duration_days == 2:
            return 0.9
        return 0.8


class DiversityScorer:
    """Penalizes candidates that repeat tags / time slots of already-selected picks"""

    @staticmethod
    def time_slot(time_str: str) -> str:
        t = time_str.lower()
        if "am" in t or "morning" in t:
            return "morning"
        if "pm" in t or "afternoon" in t:
            return "afternoon"
        if "evening" in t or "night" in t:
            return "evening"
        return "anytime"

    @classmethod
    def score(cls, activity: Activity, selected: Sequence[Activity]) -> Tuple[float, List[str]]:
        factors = []
        score = 1.0

        activity_tags = set(activity.tags)
        existing_tags = {tag for other in selected for tag in other.tags}
        overlap = len(activity_tags & existing_tags)
        tag_diversity = 1 - overlap / max(len(activity_tags), 1)
        score *= tag_diversity
        if tag_diversity > 0.7:
            factors.append("High tag diversity")
        elif overlap:
            factors.append(f"Some tag overlap: {overlap} tags")

        slot = cls.time_slot(activity.time)
        slot_count = sum(1 for other in selected if cls.time_slot(other.time) == slot)
        if slot_count == 0:
            score *= 1.1
            factors.append(f"New time slot: {slot}")
        elif slot_count > 2:
            score *= 0.8
            factors.append(f"Overused time slot: {slot}")

        return max(0.1, min(score, 1.0)), factors


class MultiDimensionalScorer:
    """
    Ranks similarity results for a query and search context.

    Diversity is assigned greedily: the candidate with the best total is
    selected first, and every later candidate's diversity is measured against
    what has been selected before it. Ties break on activity_id.
    """

    def __init__(self, config: Optional[ScorerConfig] = None):
        self.config = config or ScorerConfig()

    def rank(
        self,
        query: str,
        results: Sequence[SimilarityResult],
        context: SearchContext
    ) -> List[ScoredActivity]:
        now = self._reference_time(context)
        weights = self.config.weights

        candidates = [
            self._score_candidate(query, result, context, now)
            for result in self._best_per_title(results)
        ]

        base_totals = {
            c.activity_id: sum(getattr(c.scores, name) * getattr(weights, name) for name in DIMENSIONS[:-1])
            for c in candidates
        }

        ranked = self._select_with_diversity(candidates, base_totals)

        kept = [c for c in ranked if c.scores.composite >= self.config.min_score]
        kept.sort(key=lambda c: (-c.scores.composite, c.activity_id))
        kept = kept[:self.config.max_results]

        logger.info(
            f"Scored {len(candidates)} candidates for query={query!r}, "
            f"kept {len(kept)} (min_score={self.config.min_score})"
        )
        return kept

    def _reference_time(self, context: SearchContext) -> datetime:
        if context.current_time is not None:
            return peak_hours.to_local(context.current_time, self.config.timezone)
        return peak_hours.local_now(self.config.timezone)

    @staticmethod
    def _best_per_title(results: Sequence[SimilarityResult]) -> List[SimilarityResult]:
        best: Dict[str, SimilarityResult] = {}
        for result in results:
            current = best.get(result.title)
            if current is None or result.similarity > current.similarity:
                best[result.title] = result
        return list(best.values())

    def _score_candidate(
        self,
        query: str,
        result: SimilarityResult,
        context: SearchContext,
        now: datetime
    ) -> ScoredActivity:
        config = self.config
        weights = config.weights
        activity = Activity.from_metadata(result.activity_id, result.metadata)
        scores = ScoreBreakdown()
        reasoning: List[str] = []
        matched_terms: List[str] = []
        context_factors: List[str] = []
        temporal_factors: List[str] = []

        if weights.vector > 0:
            scores.vector = max(0.0, result.similarity)
            if scores.vector > 0.7:
                reasoning.append(f"High vector similarity: {scores.vector * 100:.1f}%")

        if weights.content > 0:
            scores.content = self._content_score(query, activity)
            if scores.content > 0.5:
                reasoning.append(f"Content match: {scores.content * 100:.1f}%")

        if config.enable_fuzzy_matching and weights.fuzzy > 0:
            title_score = FuzzyMatcher.score(query, activity.title)
            desc_score = FuzzyMatcher.score(query, activity.desc)
            scores.fuzzy = max(title_score, desc_score * 0.7)
            if scores.fuzzy > 0.6:
                reasoning.append(f"Good fuzzy match: {scores.fuzzy * 100:.1f}%")
                matched_terms.append("title" if title_score >= desc_score else "description")

        if config.enable_contextual_analysis and weights.contextual > 0:
            scores.contextual, context_factors = ContextualAnalyzer.analyze(query, activity, context)
            if scores.contextual > 0.5:
                reasoning.append(f"Strong contextual relevance: {', '.join(context_factors)}")

        if config.enable_temporal_optimization and weights.temporal > 0:
            scores.temporal, temporal_factors = TemporalScorer.score(activity, context, now)

        return ScoredActivity(
            activity_id=result.activity_id,
            activity=activity,
            similarity=result.similarity,
            scores=scores,
            reasoning=reasoning,
            matched_terms=matched_terms,
            context_factors=context_factors,
            temporal_factors=temporal_factors
        )

    @staticmethod
    def _content_score(query: str, activity: Activity) -> float:
        q = query.lower().strip()
        if not q:
            return 0.0
        title_match = 0.8 if q in activity.title.lower() else 0.0
        desc_match = 0.6 if q in activity.desc.lower() else 0.0
        tag_match = 0.7 if any(q in tag.lower() or tag.lower() in q for tag in activity.tags if tag) else 0.0
        return max(title_match, desc_match, tag_match)

    def _select_with_diversity(
        self,
        candidates: List[ScoredActivity],
        base_totals: Dict[str, float]
    ) -> List[ScoredActivity]:
        weight = self.config.weights.diversity
        use_diversity = self.config.enable_diversity_boost and weight > 0

        remaining = sorted(candidates, key=lambda c: (-base_totals[c.activity_id], c.activity_id))
        selected: List[ScoredActivity] = []

        while remaining:
            best_index = 0
            best_total = None
            best_factors: List[str] = []
            best_diversity = 0.0
            picked = [c.activity for c in selected]

            for index, candidate in enumerate(remaining):
                diversity, factors = DiversityScorer.score(candidate.activity, picked) if use_diversity else (0.0, [])
                total = base_totals[candidate.activity_id] + diversity * weight
                if best_total is None or total > best_total:
                    best_index, best_total = index, total
                    best_factors, best_diversity = factors, diversity
                if not use_diversity:
                    break

            chosen = remaining.pop(best_index)
            chosen.scores.diversity = best_diversity
            chosen.scores.composite = best_total
            if best_factors:
                chosen.reasoning.append(f"Diversity: {', '.join(best_factors)}")
            chosen.confidence = self._confidence(chosen.scores, len(chosen.reasoning))
            selected.append(chosen)

        return selected

    @staticmethod
    def _confidence(scores: ScoreBreakdown, reasoning_count: int) -> float:
        components = scores.components()
        mean = sum(components) / len(components)
        variance = sum((s - mean) ** 2 for s in components) / len(components)
        consistency_bonus = 0.2 if variance < 0.1 else 0.0
        reasoning_bonus = min(reasoning_count * 0.1, 0.3)
        return min(scores.composite + consistency_bonus + reasoning_bonus, 1.0)
