"""
List handlers for the Kanban API.

``GET|POST /boards/{boardId}/lists`` and
``PUT|DELETE /boards/{boardId}/lists/{listId}``. The board must belong to
the caller.
"""

from typing import Optional

from models.kanban import ListCreate, ListUpdate
from services.kanban import KanbanService
from utils.decorators import (api_errors, extract_path_params, get_http_method,
                              lambda_handler, parse_json_body, require_auth)
from utils.errors import MethodNotAllowedError, ValidationError
from utils.responses import HTTPStatus, success_response


def create_handler(service: Optional[KanbanService] = None):
    service = service or KanbanService.from_environment()

    @lambda_handler()
    @api_errors
    @require_auth
    @extract_path_params("boardId")
    def handler(event, context):
        method = get_http_method(event)
        user_id = event["auth"]["user_id"]
        board_id = event["path_params"]["boardId"]
        list_id = event["path_params"].get("listId")

        if list_id is None:
            if method == "GET":
                return success_response(service.list_lists(user_id, board_id))
            if method == "POST":
                data = ListCreate(**parse_json_body(event))
                created = service.create_list(user_id, board_id, data)
                return success_response(created, HTTPStatus.CREATED)
            if method in ("PUT", "DELETE"):
                raise ValidationError("List ID is required")
            raise MethodNotAllowedError()

        if method == "PUT":
            data = ListUpdate(**parse_json_body(event))
            return success_response(
                service.update_list(user_id, board_id, list_id, data)
            )
        if method == "DELETE":
            return success_response(service.delete_list(user_id, board_id, list_id))
        raise MethodNotAllowedError()

    return handler


handler = create_handler()
