from flask import Blueprint, current_app, jsonify, request

from readerboard import firestore_dao as dao
from readerboard.decorators import form_errors
from readerboard.forms import LikeForm

bp = Blueprint('reviews', __name__, url_prefix='/api/reviews')


@bp.route('')
def feed():
    limit = request.args.get('limit', current_app.config['FEED_LIMIT'], type=int)
    limit = max(1, min(limit, 100))
    viewer = request.args.get('viewer', type=int)
    return jsonify({'reviews': dao.get_global_reviews(limit, viewer_fid=viewer)})


@bp.route('/<rel_id>/like', methods=['POST'])
def toggle_like(rel_id):
    form = LikeForm()
    if not form.validate_on_submit():
        return form_errors(form)
    liked = dao.toggle_like(rel_id, form.fid.data)
    if liked is None:
        return jsonify({'error': 'Review not found'}), 404
    return jsonify({'success': True, 'liked': liked})


@bp.route('/<rel_id>/like')
def like_status(rel_id):
    fid = request.args.get('fid', type=int)
    if not fid:
        return jsonify({'error': 'fid is required'}), 400
    return jsonify({'liked': dao.check_like_status(rel_id, fid)})
