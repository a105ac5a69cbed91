"""
Handlers package for Lambda function handlers.

This package contains the API endpoint handlers for boards, lists and
cards, and the browser-facing OAuth session routes.
"""

from . import auth, boards, cards, lists

__all__ = ["auth", "boards", "lists", "cards"]
