"""
Board handlers for the Kanban API.

Routes served by this Lambda:

- ``GET /boards``: boards owned by the caller
- ``POST /boards``: create a board
- ``GET /boards/{boardId}``: one board
- ``PUT /boards/{boardId}``: partial update
- ``DELETE /boards/{boardId}``: delete (lists are not cascaded)

The caller's identity comes from the API Gateway authorizer claims.
"""

from typing import Optional

from models.kanban import BoardCreate, BoardUpdate
from services.kanban import KanbanService
from utils.decorators import (api_errors, extract_path_params, get_http_method,
                              lambda_handler, parse_json_body, require_auth)
from utils.errors import MethodNotAllowedError, ValidationError
from utils.responses import HTTPStatus, success_response


def create_handler(service: Optional[KanbanService] = None):
    """
    Build the boards Lambda entry point around a ``KanbanService``.

    Args:
        service: Service to use; defaults to one built from the environment

    Returns:
        Lambda handler function
    """
    service = service or KanbanService.from_environment()

    @lambda_handler()
    @api_errors
    @require_auth
    @extract_path_params()
    def handler(event, context):
        method = get_http_method(event)
        user_id = event["auth"]["user_id"]
        board_id = event["path_params"].get("boardId")

        if board_id is None:
            if method == "GET":
                return success_response(service.list_boards(user_id))
            if method == "POST":
                data = BoardCreate(**parse_json_body(event))
                board = service.create_board(user_id, data)
                return success_response(board, HTTPStatus.CREATED)
            if method in ("PUT", "DELETE"):
                raise ValidationError("Board ID is required")
            raise MethodNotAllowedError()

        if method == "GET":
            return success_response(service.get_board(user_id, board_id))
        if method == "PUT":
            data = BoardUpdate(**parse_json_body(event))
            return success_response(service.update_board(user_id, board_id, data))
        if method == "DELETE":
            return success_response(service.delete_board(user_id, board_id))
        raise MethodNotAllowedError()

    return handler


handler = create_handler()
