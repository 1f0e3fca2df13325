import logging

from flask import Blueprint, current_app, jsonify
from google.api_core.exceptions import GoogleAPIError

from readerboard import migrations
from readerboard.decorators import admin_required

logger = logging.getLogger(__name__)

bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _run(procedure, *args):
    try:
        result = procedure(*args)
    except GoogleAPIError as e:
        logger.exception('%s failed', procedure.__name__)
        return jsonify({'success': False, 'error': str(e)}), 500
    return jsonify({'success': True, **result})


@bp.route('/backfill-users', methods=['POST'])
@admin_required
def backfill_users():
    return _run(migrations.backfill_goods_ids)


@bp.route('/remove-join-number', methods=['POST'])
@admin_required
def remove_join_number():
    return _run(migrations.remove_join_number)


@bp.route('/reset-goods-ids', methods=['POST'])
@admin_required
def reset_goods_ids():
    return _run(migrations.reset_goods_ids, current_app.config['GOODS_ID_OVERRIDES'])
