# src/analytics/__init__.py
"""KPI and review-sentiment aggregation over persisted daily fact rows."""
