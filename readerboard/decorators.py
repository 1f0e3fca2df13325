import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request

logger = logging.getLogger(__name__)


def _bearer_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):]
    return ''


def secret_required(config_key):
    """Require 'Authorization: Bearer <secret>' when the given config secret is set.

    With no secret configured the endpoint stays open.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            secret = current_app.config.get(config_key)
            if secret and not hmac.compare_digest(_bearer_token(), secret):
                logger.warning('Rejected %s %s: bad %s', request.method, request.path, config_key)
                return jsonify({'error': 'Unauthorized'}), 401
            return f(*args, **kwargs)
        return decorated
    return decorator


admin_required = secret_required('ADMIN_SECRET')
cron_required = secret_required('CRON_SECRET')


def form_errors(form):
    return jsonify({'error': 'Invalid request', 'fields': form.errors}), 400
