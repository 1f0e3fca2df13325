from flask import Blueprint, jsonify, request

from readerboard import firestore_dao as dao
from readerboard.decorators import form_errors
from readerboard.firestore_models import is_custom_key
from readerboard.forms import CustomBookForm, CustomBookUpdateForm
from readerboard.services import open_library

bp = Blueprint('books', __name__, url_prefix='/api/books')


def _list_field(name):
    value = (request.get_json(silent=True) or {}).get(name)
    return value if isinstance(value, (list, str)) else None


@bp.route('/search')
def search():
    isbn = request.args.get('isbn', '').strip()
    if isbn:
        book = open_library.get_book_by_isbn(isbn)
        return jsonify({'books': [book] if book else [], 'customBooks': []})

    query = request.args.get('q', '').strip()
    if not query:
        return jsonify({'error': 'q or isbn is required'}), 400
    return jsonify({
        'books': open_library.search_books(query),
        'customBooks': dao.search_custom_books(query),
    })


@bp.route('/detail')
def detail():
    key = request.args.get('key', '').strip()
    if not key:
        return jsonify({'error': 'key is required'}), 400

    book = dao.get_book(key) or {}
    details = None if is_custom_key(key) else open_library.get_book_details(key)
    if not book and not details:
        return jsonify({'error': 'Book not found'}), 404

    merged = dict(details or {})
    merged.update(book)
    merged['key'] = key
    merged['coverUrl'] = merged.get('coverUrl') or open_library.cover_url(merged.get('cover_i'))
    return jsonify({
        'book': merged,
        'inCatalog': dao.book_exists(key),
        'readers': dao.get_book_users(key),
    })


@bp.route('/custom', methods=['POST'])
def add_custom():
    form = CustomBookForm()
    if not form.validate_on_submit():
        return form_errors(form)
    key = dao.add_custom_book({
        'title': form.title.data,
        'author_name': _list_field('author_name'),
        'subjects': _list_field('subjects'),
        'description': form.description.data,
        'coverUrl': form.coverUrl.data,
        'first_publish_year': form.first_publish_year.data,
    }, created_by=form.createdBy.data)
    return jsonify({'success': True, 'key': key}), 201


@bp.route('/custom/<key>')
def get_custom(key):
    book = dao.get_custom_book_details(key)
    if not book:
        return jsonify({'error': 'Book not found'}), 404
    return jsonify(book)


@bp.route('/custom/<key>', methods=['PATCH'])
def update_custom(key):
    if not is_custom_key(key):
        return jsonify({'error': 'Not a custom book'}), 400
    form = CustomBookUpdateForm()
    if not form.validate_on_submit():
        return form_errors(form)
    data = {
        'title': form.title.data,
        'description': form.description.data,
        'coverUrl': form.coverUrl.data,
        'first_publish_year': form.first_publish_year.data,
        'author_name': _list_field('author_name'),
        'subjects': _list_field('subjects'),
    }
    if not dao.update_custom_book(key, data):
        return jsonify({'error': 'Book not found'}), 404
    return jsonify({'success': True})
