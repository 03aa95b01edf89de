# Overview: Maps service Failure values onto JSON error responses.

from flask import jsonify

from ..services.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from ..services.results import Failure


def failure_status(failure: Failure) -> int:
    """not found 404, permission 403, invalid input 400, any other business rule 409."""
    error = failure.error
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, PermissionDeniedError):
        return 403
    if isinstance(error, InvalidInputError):
        return 400
    return 409


def failure_response(failure: Failure):
    return jsonify(failure.error.to_dict()), failure_status(failure)
