from flask import Blueprint, current_app, jsonify, request

from readerboard import firestore_dao as dao
from readerboard.decorators import form_errors
from readerboard.forms import LibraryEntryForm, StatusForm, ReadingLogForm

bp = Blueprint('library', __name__, url_prefix='/api/library')


def _book_key_arg():
    return request.args.get('bookKey', '').strip()


@bp.route('/<int:fid>')
def user_books(fid):
    return jsonify({'books': dao.get_user_books(fid)})


@bp.route('/<int:fid>', methods=['POST'])
def save_entry(fid):
    form = LibraryEntryForm()
    if not form.validate_on_submit():
        return form_errors(form)

    payload = request.get_json(silent=True) or {}
    book = payload.get('book')
    if not isinstance(book, dict) or not book.get('key') or not book.get('title'):
        return jsonify({'error': 'book with key and title is required'}), 400

    # An omitted review leaves the stored one untouched
    review = form.review.data if 'review' in payload else None
    rel_id = dao.save_relationship(fid, book, form.status.data, review=review)
    return jsonify({'success': True, 'id': rel_id})


@bp.route('/<int:fid>/status', methods=['PATCH'])
def change_status(fid):
    form = StatusForm()
    if not form.validate_on_submit():
        return form_errors(form)
    rel_id = dao.update_status(fid, form.bookKey.data, form.status.data)
    return jsonify({'success': True, 'id': rel_id})


@bp.route('/<int:fid>/entry')
def get_entry(fid):
    book_key = _book_key_arg()
    if not book_key:
        return jsonify({'error': 'bookKey is required'}), 400
    entry = dao.get_relationship(fid, book_key)
    if not entry:
        return jsonify({'error': 'Book not in library'}), 404
    return jsonify(entry)


@bp.route('/<int:fid>/entry', methods=['DELETE'])
def remove_entry(fid):
    book_key = _book_key_arg()
    if not book_key:
        return jsonify({'error': 'bookKey is required'}), 400
    if not dao.delete_relationship(fid, book_key):
        return jsonify({'error': 'Book not in library'}), 404
    return jsonify({'success': True})


@bp.route('/<int:fid>/logs', methods=['POST'])
def add_log(fid):
    form = ReadingLogForm()
    if not form.validate_on_submit():
        return form_errors(form)

    book_key = form.bookKey.data
    if not dao.get_relationship(fid, book_key):
        return jsonify({'error': 'Book not in library'}), 404

    log_id = dao.add_log(
        fid, book_key, form.page.data,
        thoughts=form.thoughts.data, unit=form.unit.data, skipped=form.skipped.data,
    )
    awarded = dao.award_points(fid, current_app.config['DAILY_LOG_POINTS'])
    return jsonify({'success': True, 'id': log_id, 'pointsAwarded': awarded})


@bp.route('/<int:fid>/logs')
def list_logs(fid):
    book_key = _book_key_arg()
    if not book_key:
        return jsonify({'error': 'bookKey is required'}), 400
    return jsonify({'logs': dao.get_logs(fid, book_key)})
