# src/reports/generator.py
from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from src.schemas.models import HealthScore, MarketInsight, ProcessedPropertyData, Submission

BREAKDOWN_LABELS: tuple[tuple[str, str, int], ...] = (
    ("classificacao", "Guest Rating", 25),
    ("presenca_digital", "Digital Presence", 20),
    ("performance_financeira", "Financial Performance", 20),
    ("infraestrutura", "Infrastructure", 12),
    ("experiencia_hospede", "Guest Experience", 8),
    ("gestao_reputacao", "Reputation Management", 8),
)


def _fmt_currency(x: float | None) -> str:
    """
    Format a float as USD-style currency with thousands separators.

    Example:
        123456.789 -> $123,456.79
        None -> N/A
    """
    if x is None:
        return "N/A"
    sign = "-" if x < 0 else ""
    return f"{sign}${abs(x):,.2f}"


def _fmt_pct(x: float | None) -> str:
    """
    Format a percent value (0-100) with one decimal.

    Example:
        65 -> 65.0%
    """
    if x is None:
        return "N/A"
    return f"{x:.1f}%"


def _section(title: str) -> str:
    """
    Render a level-2 heading for Markdown sections.
    """
    return f"\n## {title}\n"


def _bullets(items: Iterable[Any], empty: str = "- N/A") -> list[str]:
    lines = [f"- {item}" for item in items if item not in (None, "")]
    return lines or [empty]


# -----------------------
# Header & property sections
# -----------------------


def _render_header(submission: Submission) -> str:
    """
    Render the report header: listing name, location, platform and run status.
    """
    data = submission.property_data
    name = data.basic_info.name if data else "Subject Property"
    body = [f"# Listing Diagnostic – {name}", ""]
    if data:
        body.append(f"**Location:** {data.basic_info.location}")
        body.append(f"**Type:** {data.basic_info.property_type}")
    body.append(f"**Platform:** {submission.platform.value}")
    body.append(f"**Listing URL:** {submission.property_url}")
    body.append(f"**Submission:** {submission.id} ({submission.status.value})")
    return "\n".join(body) + "\n"


def _render_health(health: HealthScore | None) -> str:
    """
    Render the Health Score total, category and per-component table.
    """
    if health is None:
        return ""
    lines = [
        _section("Health Score"),
        f"**Total:** {health.total}/100 ({health.category.value})",
        "",
        "| Component | Score | Max |",
        "|---|---:|---:|",
    ]
    for field, label, weight in BREAKDOWN_LABELS:
        lines.append(f"| {label} | {getattr(health.breakdown, field):.2f} | {weight} |")
    return "\n".join(lines) + "\n"


def _render_performance(data: ProcessedPropertyData | None) -> str:
    if data is None:
        return ""
    perf = data.performance
    lines = [
        _section("Performance"),
        f"- **Rating (5-pt):** {perf.rating:.2f}",
        f"- **Reviews:** {perf.review_count}",
        f"- **Estimated Occupancy:** {_fmt_pct(perf.occupancy_rate)}",
        f"- **Nightly Price:** {_fmt_currency(data.pricing.base_price)}",
        f"- **Cleaning Fee:** {_fmt_currency(data.pricing.cleaning_fee)}",
        f"- **Photos:** {len(data.photos)}",
        f"- **Amenities:** {len(data.amenities)}",
    ]
    return "\n".join(lines) + "\n"


def _render_market(market: MarketInsight | None) -> str:
    """
    Render market rate, occupancy, saturation, seasonality and the price band.
    """
    if market is None:
        return ""
    s = market.seasonal_trends
    rec = market.price_recommendation
    lines = [_section("Market Insight")]
    if market.is_default:
        lines.append("_No comparable data was available; market defaults are shown._")
        lines.append("")
    lines += [
        f"- **Average Daily Rate:** {_fmt_currency(market.average_daily_rate)}",
        f"- **Market Occupancy:** {_fmt_pct(market.occupancy_rate)}",
        f"- **Competitors:** {market.competitor_count} ({market.market_saturation.value} saturation)",
        "",
        "| Spring | Summer | Fall | Winter |",
        "|---:|---:|---:|---:|",
        f"| {_fmt_currency(s.spring)} | {_fmt_currency(s.summer)} | {_fmt_currency(s.fall)} | {_fmt_currency(s.winter)} |",
        "",
        f"**Suggested Price:** {_fmt_currency(rec.suggested)} "
        f"(range {_fmt_currency(rec.min)} – {_fmt_currency(rec.max)})",
        "",
        rec.reasoning,
    ]
    return "\n".join(lines) + "\n"


# -----------------------
# Analysis sections
# -----------------------


def _render_interventions(items: Any) -> list[str]:
    if not isinstance(items, list) or not items:
        return []
    lines = ["", "| Priority | Problem | Solution | Investment | Impact |", "|---|---|---|---|---|"]
    for item in items:
        if not isinstance(item, dict):
            continue
        lines.append(
            "| {priority} | {problem} | {solution} | {investment} | {impact} |".format(
                **{k: item.get(k, "") for k in ("priority", "problem", "solution", "investment", "impact")}
            )
        )
    return lines


def _render_analysis(result: dict[str, Any] | None) -> str:
    """
    Render the generative analysis. Model output is loosely shaped, so every
    nested key is optional.
    """
    if not result:
        return ""

    def _list(value: Any) -> list[Any]:
        return value if isinstance(value, list) else []

    def _dict(value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    lines = [_section("Executive Summary"), str(result.get("executive_summary", "N/A"))]

    if result.get("estimated_annual_revenue") or result.get("estimated_occupancy_rate") is not None:
        lines.append("")
        lines.append(f"- **Estimated Annual Revenue:** {result.get('estimated_annual_revenue', 'N/A')}")
        occ = result.get("estimated_occupancy_rate")
        lines.append(f"- **Estimated Occupancy:** {_fmt_pct(occ) if isinstance(occ, (int, float)) else 'N/A'}")

    lines.append(_section("Critical Issues"))
    lines += _bullets(_list(result.get("critical_issues")))
    lines.append(_section("Strengths"))
    lines += _bullets(_list(result.get("strengths")))

    reputation = _dict(result.get("reputation"))
    if reputation:
        lines.append(_section("Reputation"))
        if reputation.get("current_situation"):
            lines.append(str(reputation["current_situation"]))
            lines.append("")
        lines.append("**Improvement Strategy:**")
        lines += _bullets(_list(reputation.get("improvement_strategy")))

    infra = _dict(result.get("infrastructure"))
    interventions = _render_interventions(infra.get("priority_interventions"))
    if interventions:
        lines.append(_section("Priority Interventions"))
        lines += interventions

    pricing = _dict(result.get("pricing_strategy"))
    if pricing:
        lines.append(_section("Pricing Strategy"))
        if pricing.get("current_analysis"):
            lines.append(str(pricing["current_analysis"]))
            lines.append("")
        lines += _bullets(_list(pricing.get("recommendations")))

    presence = _dict(result.get("online_presence"))
    if presence:
        lines.append(_section("Online Presence"))
        lines.append(f"- **Photo Quality:** {presence.get('photo_quality', 'N/A')}")
        lines.append(f"- **Description Quality:** {presence.get('description_quality', 'N/A')}")
        plan = _list(presence.get("optimization_plan"))
        if plan:
            lines.append("")
            lines.append("**Optimization Plan:**")
            lines += _bullets(plan)

    return "\n".join(lines) + "\n"


def generate_report(submission: Submission, market: MarketInsight | None = None) -> str:
    """
    Generate a Markdown diagnostic report for a submission.

    Sections:
      - Header: name, location, platform, URL, submission id/status
      - Health Score: total, category, six-component table
      - Performance: rating, reviews, occupancy, price, fees, photo/amenity counts
      - Market Insight (when given): rate, occupancy, saturation, seasonality, price band
      - Analysis: executive summary, issues, strengths, reputation, interventions,
        pricing strategy, online presence
    """
    parts = [
        _render_header(submission),
        _render_health(submission.health_score),
        _render_performance(submission.property_data),
        _render_market(market),
        _render_analysis(submission.analysis_result),
    ]
    return "\n".join(part for part in parts if part).strip() + "\n"


def write_report(path: str | Path, submission: Submission, market: MarketInsight | None = None) -> Path:
    """
    Convenience helper to write the generated report to disk. Returns the path written.
    """
    md = generate_report(submission, market=market)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        f.write(md)
    return out


__all__ = ["generate_report", "write_report"]
