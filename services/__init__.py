"""
Services package for business logic and external integrations.

This package contains the DynamoDB access layer, the board/list/card
service, server-side sessions, the Cognito OAuth client and the login
flow built on top of them.
"""

from .auth_flow import AuthFlow
from .cognito_oauth import CognitoOAuthClient
from .dynamodb import KanbanTable
from .kanban import KanbanService
from .sessions import SessionStore

__all__ = [
    "KanbanTable",
    "KanbanService",
    "SessionStore",
    "CognitoOAuthClient",
    "AuthFlow",
]
