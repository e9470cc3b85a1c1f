# src/core/adapters/__init__.py
from __future__ import annotations

from .platforms import ADAPTERS, adapt

__all__ = ["ADAPTERS", "adapt"]
