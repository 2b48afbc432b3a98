"""
HTTP API blueprints.
"""

from .assignments import assignments_bp

__all__ = ["assignments_bp"]
