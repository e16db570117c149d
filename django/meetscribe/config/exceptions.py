"""JSON error envelope shared by every endpoint.

Errors leave the API as ``{"error": <message>}``. Framework errors keep
their original payload under ``details``; pipeline errors only include
``details`` when ``DEBUG`` is on.
"""

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


def error_response(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, exc=None, headers=None):
    body = {"error": message}
    if exc is not None and settings.DEBUG:
        body["details"] = repr(exc)
    return Response(body, status=status_code, headers=headers)


def envelope_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None
    detail = response.data
    response.data = {"error": _first_message(detail), "details": detail}
    return response


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        if "detail" in detail:
            return str(detail["detail"])
        for value in detail.values():
            return _first_message(value)
        return "Invalid request"
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid request"
    return str(detail)
