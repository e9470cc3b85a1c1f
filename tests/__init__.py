# tests/__init__.py
"""
Expose common test utilities so tests can import directly:
    from tests import make_processed, make_submission_request
"""

from .utils import make_processed, make_settings, make_submission_request

__all__ = ["make_processed", "make_settings", "make_submission_request"]
