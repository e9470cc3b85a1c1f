# src/analytics/sentiment.py
"""
Review sentiment: scoring of review texts and aggregation of topic facts.

Purpose
-------
- Score single review texts with VADER (vaderSentiment), falling back to a
  whole-word keyword count.
- Roll SentimentTopicFact rows up into per-topic means, an overall score,
  mention buckets, per-day trend, period comparison and actionable insights.

Design
------
- Buckets: score ≥ 0.3 positive, ≤ -0.3 negative, otherwise neutral.
- Overall score is the mean of per-topic means (every topic weighs the same).
- Mention buckets follow each fact row's own score.
- Period comparisons call a change > 0.1 improving and < -0.1 declining.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from functools import lru_cache
from statistics import fmean
from typing import Protocol

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from src.schemas.labels import (
    TOPIC_KEYWORDS,
    TOPIC_REMEDIATION,
    SentimentCategory,
    SentimentTrendDirection,
    parse_topic,
)
from src.schemas.models import (
    SentimentComparison,
    SentimentInsights,
    SentimentSummary,
    SentimentTopicFact,
    SentimentTrendPoint,
    TextSentiment,
    TopicScore,
    TopicTrend,
)

logger = logging.getLogger(__name__)

POSITIVE_THRESHOLD = 0.3
NEGATIVE_THRESHOLD = -0.3
TREND_THRESHOLD = 0.1
INSIGHT_LIMIT = 3
AUDIT_ACTION = "Conduct comprehensive property audit and address critical issues immediately"

WORD_RE = re.compile(r"\w+")

POSITIVE_KEYWORDS: frozenset[str] = frozenset({
    "excellent", "amazing", "wonderful", "perfect", "great", "love", "loved",
    "fantastic", "beautiful", "clean", "comfortable", "recommend", "helpful",
    "excelente", "incrível", "maravilhoso", "perfeito", "ótimo", "adorei",
    "fantástico", "lindo", "limpo", "confortável", "recomendo", "útil",
})  # fmt: skip

NEGATIVE_KEYWORDS: frozenset[str] = frozenset({
    "terrible", "awful", "horrible", "bad", "poor", "dirty", "uncomfortable",
    "disappointed", "disappointing", "worst", "never", "avoid", "issue",
    "unhelpful", "unclean", "rude", "noisy", "broken",
    "terrível", "horrível", "ruim", "sujo", "desconfortável", "decepcionado",
    "pior", "nunca", "evite", "problema",
})  # fmt: skip


class SentimentFactSource(Protocol):
    def list_sentiment_topics(self, property_id: str, start: date, end: date) -> list[SentimentTopicFact]: ...


def categorize_sentiment(score: float) -> SentimentCategory:
    if score >= POSITIVE_THRESHOLD:
        return SentimentCategory.positive
    if score <= NEGATIVE_THRESHOLD:
        return SentimentCategory.negative
    return SentimentCategory.neutral


def _direction(diff: float) -> SentimentTrendDirection:
    if diff > TREND_THRESHOLD:
        return SentimentTrendDirection.improving
    if diff < -TREND_THRESHOLD:
        return SentimentTrendDirection.declining
    return SentimentTrendDirection.stable


# =========================
# Text scoring
# =========================


def extract_topics(text: str) -> list[str]:
    lower = (text or "").lower()
    return [t.value for t, words in TOPIC_KEYWORDS.items() if any(w in lower for w in words)]


@lru_cache(maxsize=1)
def _vader() -> SentimentIntensityAnalyzer:
    return SentimentIntensityAnalyzer()


def score_keywords(text: str) -> float:
    """
    Keyword score in [-1, 1]: (positive hits - negative hits) / max(hits, 5).

    Matches whole words, so "unhelpful" never counts as "helpful".
    """
    words = WORD_RE.findall((text or "").lower())
    pos = sum(1 for w in words if w in POSITIVE_KEYWORDS)
    neg = sum(1 for w in words if w in NEGATIVE_KEYWORDS)
    total = pos + neg
    score = 0.0 if total == 0 else (pos - neg) / max(total, 5)
    return max(-1.0, min(1.0, score))


def score_text_sentiment(text: str) -> TextSentiment:
    """
    Score one review text in [-1, 1].

    Uses the VADER compound score, which handles negation ("not bad") and
    intensifiers. Falls back to `score_keywords` when VADER fails or finds no
    sentiment-bearing English words (e.g. Portuguese reviews).
    """
    score = 0.0
    if text and text.strip():
        try:
            score = _vader().polarity_scores(text)["compound"]
        except Exception as exc:  # noqa: BLE001
            logger.warning("VADER scoring failed, using keyword fallback: %s", exc)
            score = 0.0
        if score == 0.0:
            score = score_keywords(text)
    return TextSentiment(score=round(score, 4), category=categorize_sentiment(score), topics=extract_topics(text))


def topic_facts_from_reviews(
    property_id: str,
    day: date,
    reviews: Iterable[str],
    *,
    platform: str = "all",
) -> list[SentimentTopicFact]:
    """One fact per topic mentioned across `reviews`, scored by the mean text score."""
    scores: dict[str, list[float]] = defaultdict(list)
    snippets: dict[str, list[str]] = defaultdict(list)
    for text in reviews:
        result = score_text_sentiment(text)
        for topic in result.topics:
            scores[topic].append(result.score)
            if len(snippets[topic]) < 3:
                snippets[topic].append(text[:200])
    return [
        SentimentTopicFact(
            property_id=property_id,
            date=day,
            platform=platform,
            topic=topic,
            sentiment_score=round(fmean(vals), 4),
            mention_count=len(vals),
            sample_snippets=snippets[topic],
        )
        for topic, vals in scores.items()
    ]


# =========================
# Aggregation
# =========================


def summarize_sentiment(facts: Sequence[SentimentTopicFact]) -> SentimentSummary:
    if not facts:
        return SentimentSummary()

    by_topic: dict[str, list[SentimentTopicFact]] = defaultdict(list)
    buckets = {c: 0 for c in SentimentCategory}
    for f in facts:
        by_topic[f.topic].append(f)
        buckets[categorize_sentiment(f.sentiment_score)] += f.mention_count

    topic_scores: dict[str, TopicScore] = {}
    for topic, rows in by_topic.items():
        mean = fmean(r.sentiment_score for r in rows)
        topic_scores[topic] = TopicScore(
            topic=topic,
            score=round(mean, 4),
            mentions=sum(r.mention_count for r in rows),
            category=categorize_sentiment(mean),
        )

    overall = round(fmean(t.score for t in topic_scores.values()), 4)
    return SentimentSummary(
        overall_score=overall,
        overall_category=categorize_sentiment(overall),
        positive_mentions=buckets[SentimentCategory.positive],
        neutral_mentions=buckets[SentimentCategory.neutral],
        negative_mentions=buckets[SentimentCategory.negative],
        topic_scores=topic_scores,
    )


def sentiment_insights(summary: SentimentSummary) -> SentimentInsights:
    scores = list(summary.topic_scores.values())
    top_positive = sorted(
        (t for t in scores if t.category is SentimentCategory.positive),
        key=lambda t: t.score,
        reverse=True,
    )[:INSIGHT_LIMIT]
    weak = sorted(
        (
            t
            for t in scores
            if t.category is SentimentCategory.negative or (t.category is SentimentCategory.neutral and t.score < 0)
        ),
        key=lambda t: t.score,
    )[:INSIGHT_LIMIT]

    actions: list[str] = []
    for t in weak:
        topic = parse_topic(t.topic)
        if topic is not None:
            actions.append(TOPIC_REMEDIATION[topic])
    if summary.overall_category is SentimentCategory.negative:
        actions.append(AUDIT_ACTION)

    return SentimentInsights(
        top_positive_aspects=top_positive,
        areas_for_improvement=weak,
        action_items=actions,
        overall_health=summary.overall_category,
        requires_immediate_attention=summary.overall_score < NEGATIVE_THRESHOLD,
    )


def sentiment_trend(facts: Iterable[SentimentTopicFact]) -> list[SentimentTrendPoint]:
    by_day: dict[date, list[SentimentTopicFact]] = defaultdict(list)
    for f in facts:
        by_day[f.date].append(f)

    points: list[SentimentTrendPoint] = []
    for day in sorted(by_day):
        rows = by_day[day]
        counts = {c: 0 for c in SentimentCategory}
        for r in rows:
            counts[categorize_sentiment(r.sentiment_score)] += r.mention_count
        points.append(
            SentimentTrendPoint(
                date=day,
                score=round(fmean(r.sentiment_score for r in rows), 4),
                positive_mentions=counts[SentimentCategory.positive],
                neutral_mentions=counts[SentimentCategory.neutral],
                negative_mentions=counts[SentimentCategory.negative],
            )
        )
    return points


def compare_sentiment(current: SentimentSummary, previous: SentimentSummary) -> SentimentComparison:
    diff = round(current.overall_score - previous.overall_score, 4)
    return SentimentComparison(
        current=current.overall_score,
        previous=previous.overall_score,
        change=diff,
        direction=_direction(diff),
    )


def topic_trends(current: SentimentSummary, previous: SentimentSummary | None = None) -> list[TopicTrend]:
    """Per-topic scores with direction against `previous`, best topic first."""
    out: list[TopicTrend] = []
    for topic, cur in current.topic_scores.items():
        prev = previous.topic_scores.get(topic) if previous else None
        out.append(
            TopicTrend(
                topic=topic,
                score=cur.score,
                mentions=cur.mentions,
                category=cur.category,
                direction=_direction(cur.score - prev.score) if prev else SentimentTrendDirection.stable,
                previous_score=prev.score if prev else None,
            )
        )
    out.sort(key=lambda t: t.score, reverse=True)
    return out


def load_sentiment_summary(
    source: SentimentFactSource,
    property_id: str,
    start: date,
    end: date,
) -> SentimentSummary:
    return summarize_sentiment(source.list_sentiment_topics(property_id, start, end))


__all__ = [
    "POSITIVE_KEYWORDS",
    "NEGATIVE_KEYWORDS",
    "SentimentFactSource",
    "categorize_sentiment",
    "extract_topics",
    "score_keywords",
    "score_text_sentiment",
    "topic_facts_from_reviews",
    "summarize_sentiment",
    "sentiment_insights",
    "sentiment_trend",
    "compare_sentiment",
    "topic_trends",
    "load_sentiment_summary",
]
