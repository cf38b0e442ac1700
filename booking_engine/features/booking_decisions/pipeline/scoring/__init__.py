"""
Priority scoring package.

Provides the scorer that triages incoming booking requests.
"""

from .service import PriorityScorer, priority_scorer

__all__ = ["PriorityScorer", "priority_scorer"]
