"""
Utility functions for API responses.
"""
from flask import jsonify


def success_response(data=None, message=None, status_code=200):
    """
    Create a standardized success response.

    Args:
        data: Response data (dict or list)
        message: Optional success message
        status_code: HTTP status code (default: 200)

    Returns:
        Flask response tuple
    """
    response = {'status': 'success'}

    if message:
        response['message'] = message

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message, status_code=400, errors=None, retryable=None):
    """
    Create a standardized error response.

    Args:
        message: Error message
        status_code: HTTP status code (default: 400)
        errors: Optional list of detailed errors
        retryable: If set, tells the client whether retrying may succeed

    Returns:
        Flask response tuple
    """
    response = {
        'status': 'error',
        'message': message,
    }

    if errors:
        response['errors'] = errors

    if retryable is not None:
        response['retryable'] = retryable

    return jsonify(response), status_code
