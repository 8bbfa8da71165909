"""
JSON envelope shared by every endpoint:

    {'status': 'success' | 'error', 'message': ..., 'data': {...}}
"""
import json

from django.http import JsonResponse


def parse_json(request):
    """Return the decoded JSON object body, or None when it is not valid JSON."""
    try:
        payload = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def json_success(data=None, message=None, status=200, **extra):
    body = {'status': 'success'}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    body.update(extra)
    return JsonResponse(body, status=status)


def json_error(message, status=400, **extra):
    body = {'status': 'error', 'message': message}
    body.update(extra)
    return JsonResponse(body, status=status)


def invalid_json_response():
    return json_error('Invalid JSON payload', status=400)


def form_errors_response(form):
    return json_error('Invalid data', status=400, errors=form.errors.get_json_data())


def server_error_response():
    return json_error('Internal server error', status=500)
