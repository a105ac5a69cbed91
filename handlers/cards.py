"""
Card handlers for the Kanban API.

- ``GET /boards/{boardId}/lists/{listId}/cards``
- ``POST /boards/{boardId}/lists/{listId}/cards``
- ``PUT /boards/{boardId}/lists/{listId}/cards/{cardId}``: partial update;
  a ``listId`` in the body moves the card to that list of the same board
- ``DELETE /boards/{boardId}/lists/{listId}/cards/{cardId}``
"""

from typing import Optional

from models.kanban import CardCreate, CardUpdate
from services.kanban import KanbanService
from utils.decorators import (api_errors, extract_path_params, get_http_method,
                              lambda_handler, parse_json_body, require_auth)
from utils.errors import MethodNotAllowedError, ValidationError
from utils.responses import HTTPStatus, success_response


def create_handler(service: Optional[KanbanService] = None):
    """
    Build the cards Lambda entry point.

    Args:
        service: Service to use; defaults to one built from the environment

    Returns:
        Lambda handler function
    """
    service = service or KanbanService.from_environment()

    @lambda_handler()
    @api_errors
    @require_auth
    @extract_path_params("boardId", "listId")
    def handler(event, context):
        method = get_http_method(event)
        user_id = event["auth"]["user_id"]
        board_id = event["path_params"]["boardId"]
        list_id = event["path_params"]["listId"]
        card_id = event["path_params"].get("cardId")

        if card_id is None:
            if method == "GET":
                return success_response(service.list_cards(user_id, board_id, list_id))
            if method == "POST":
                data = CardCreate(**parse_json_body(event))
                card = service.create_card(user_id, board_id, list_id, data)
                return success_response(card, HTTPStatus.CREATED)
            if method in ("PUT", "DELETE"):
                raise ValidationError("Card ID is required")
            raise MethodNotAllowedError()

        if method == "PUT":
            data = CardUpdate(**parse_json_body(event))
            return success_response(
                service.update_card(user_id, board_id, list_id, card_id, data)
            )
        if method == "DELETE":
            return success_response(
                service.delete_card(user_id, board_id, list_id, card_id)
            )
        raise MethodNotAllowedError()

    return handler


handler = create_handler()
