from flask import Blueprint, current_app, jsonify, request

from readerboard import firestore_dao as dao
from readerboard.decorators import form_errors
from readerboard.forms import ProfileForm, NotificationsForm
from readerboard.services.notifications import get_user_score

bp = Blueprint('users', __name__, url_prefix='/api/users')


@bp.route('', methods=['POST'])
def save_profile():
    form = ProfileForm()
    if not form.validate_on_submit():
        return form_errors(form)

    payload = request.get_json(silent=True) or {}
    goods_id = dao.save_profile({
        'fid': form.fid.data,
        'username': form.username.data,
        'displayName': form.displayName.data,
        'pfpUrl': form.pfpUrl.data,
        'notificationsEnabled': bool(payload.get('notificationsEnabled', False)),
    })
    return jsonify({'success': True, 'goodsID': goods_id})


@bp.route('/<int:fid>')
def get_profile(fid):
    profile = dao.get_user_profile(fid)
    if not profile:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(profile)


@bp.route('/<int:fid>/notifications', methods=['PUT'])
def set_notifications(fid):
    form = NotificationsForm()
    if not form.validate_on_submit():
        return form_errors(form)
    if not dao.set_notifications_enabled(fid, form.enabled.data):
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'success': True, 'notificationsEnabled': form.enabled.data})


@bp.route('/search')
def search():
    text = request.args.get('q', '').strip()
    if not text:
        return jsonify({'error': 'q is required'}), 400
    return jsonify({'users': dao.search_users(text)})


@bp.route('/leaderboard')
def leaderboard():
    limit = request.args.get('limit', current_app.config['LEADERBOARD_LIMIT'], type=int)
    limit = max(1, min(limit, 500))
    return jsonify({'users': dao.get_leaderboard(limit)})


@bp.route('/score')
def score():
    fid = request.args.get('fid', type=int)
    if not fid:
        return jsonify({'error': 'FID is required'}), 400
    value = get_user_score(fid)
    if value is None:
        return jsonify({'error': 'Failed to fetch score'}), 502
    return jsonify({'score': value})
