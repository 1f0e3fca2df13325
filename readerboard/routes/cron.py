import logging

from flask import Blueprint, jsonify
from google.api_core.exceptions import GoogleAPIError

from readerboard.decorators import cron_required
from readerboard.services.daily_reminder import send_daily_notifications

logger = logging.getLogger(__name__)

bp = Blueprint('cron', __name__, url_prefix='/api/cron')


@bp.route('/send-daily-notifications')
@cron_required
def daily_notifications():
    try:
        result = send_daily_notifications()
    except GoogleAPIError:
        logger.exception('Cron job failed')
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500
    return jsonify({'success': True, **result})
