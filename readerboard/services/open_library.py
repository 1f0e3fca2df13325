"""Open Library client. Every call is best effort: failures return [] or None."""

import logging

import requests
from flask import current_app, has_app_context
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://openlibrary.org'
COVERS_URL = 'https://covers.openlibrary.org/b/id/{cover_id}-{size}.jpg'
TIMEOUT = (2.5, 4.5)
SEARCH_FIELDS = 'key,title,author_name,cover_i,first_publish_year,isbn'


def _base_url():
    if has_app_context():
        return current_app.config.get('OPEN_LIBRARY_URL', DEFAULT_BASE_URL).rstrip('/')
    return DEFAULT_BASE_URL


def is_rate_limit_error(exception: BaseException) -> bool:
    response = getattr(exception, 'response', None)
    return response is not None and response.status_code == 429


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception(is_rate_limit_error),
    reraise=True
)
def _get_json(path, params=None):
    response = requests.get(f'{_base_url()}{path}', params=params, timeout=TIMEOUT)
    response.raise_for_status()
    return response.json()


def cover_url(cover_id, size='L'):
    if not cover_id:
        return None
    return COVERS_URL.format(cover_id=cover_id, size=size)


def search_books(query, limit=5):
    """Search the catalog. Returns a list of book summary dicts."""
    if not query or not query.strip():
        return []
    try:
        data = _get_json('/search.json', {'q': query.strip(), 'limit': limit, 'fields': SEARCH_FIELDS})
    except (requests.RequestException, ValueError):
        logger.exception('Error searching books for %r', query)
        return []
    return [doc for doc in data.get('docs', []) if doc.get('key') and doc.get('title')]


def get_book_by_isbn(isbn):
    if not isbn:
        return None
    try:
        data = _get_json('/search.json', {'isbn': isbn, 'fields': SEARCH_FIELDS})
    except (requests.RequestException, ValueError):
        logger.exception('Error getting book by ISBN %s', isbn)
        return None
    docs = data.get('docs') or []
    return docs[0] if docs else None


def _description_text(value):
    if isinstance(value, dict):
        return value.get('value')
    return value


def get_book_details(work_key):
    """Fetch a work ('/works/OL123W'). Returns a details dict or None."""
    if not work_key or not work_key.startswith('/works/'):
        return None
    try:
        data = _get_json(f'{work_key}.json')
    except (requests.RequestException, ValueError):
        logger.exception('Error fetching details for %s', work_key)
        return None
    covers = data.get('covers') or []
    return {
        'key': data.get('key', work_key),
        'title': data.get('title'),
        'description': _description_text(data.get('description')),
        'subjects': (data.get('subjects') or [])[:10],
        'cover_i': covers[0] if covers else None,
        'first_publish_date': data.get('first_publish_date'),
    }
