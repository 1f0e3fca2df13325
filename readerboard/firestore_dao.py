"""
Firestore Data Access Object (DAO) layer.

Route files and jobs call functions from this module instead of touching
the Firestore client directly.

Collections:
    users/{fid}                      user profiles
    userBooks/{fid}_{bookId}         user-book relationships
        logs/{autoId}                reading progress entries
        likes/{likerFid}             review likes
    books/{bookId}                   catalog metadata
    custom_books/{autoId}            user-submitted books
    counters/users                   goodsID high-water mark

Read-style functions log store errors and return an empty default.
Write-style functions log store errors and re-raise them.
"""

import logging
from datetime import datetime, timezone
from functools import wraps
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context
from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1 import FieldFilter

from readerboard.firebase_init import get_db
from readerboard.firestore_models import (
    BookRecord, CustomBookRecord, LikeRecord, ReadingLogEntry, UserBookRelationship,
    UserProfile, CUSTOM_PREFIX, STATUS_CURRENT, STATUSES, book_doc_id, compact,
    is_custom_key, relationship_id,
)

logger = logging.getLogger(__name__)

USERS = 'users'
USER_BOOKS = 'userBooks'
BOOKS = 'books'
CUSTOM_BOOKS = 'custom_books'
COUNTERS = 'counters'
USER_COUNTER = 'users'
LOGS = 'logs'
LIKES = 'likes'

# Write batches are capped at 500 operations
BATCH_LIMIT = 450


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _doc_to_dict(doc_snapshot):
    """Convert a Firestore DocumentSnapshot to a dict with 'id' field."""
    if not doc_snapshot.exists:
        return None
    d = doc_snapshot.to_dict()
    d['id'] = doc_snapshot.id
    return d


def _query_to_list(query_ref):
    """Run a query and return a list of dicts."""
    return [_doc_to_dict(doc) for doc in query_ref.stream()]


def _now():
    return datetime.now(timezone.utc)


def _config(key, default=None):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def today():
    """Today's calendar date (ISO string) in the configured points time zone."""
    zone = ZoneInfo(_config('POINTS_TIMEZONE', 'UTC'))
    return datetime.now(zone).date().isoformat()


def _read_or_default(default_factory):
    """Turn store errors raised by a read into a logged, empty result."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except GoogleAPIError:
                logger.exception('Firestore read failed in %s', f.__name__)
                return default_factory()
        return decorated
    return decorator


def _logged_write(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except GoogleAPIError:
            logger.exception('Firestore write failed in %s', f.__name__)
            raise
    return decorated


def _none():
    return None


def _delete_in_batches(refs):
    """Delete document references with chunked write batches. Returns count."""
    count = 0
    batch = get_db().batch()
    pending = 0
    for ref in refs:
        batch.delete(ref)
        pending += 1
        count += 1
        if pending >= BATCH_LIMIT:
            batch.commit()
            batch = get_db().batch()
            pending = 0
    if pending:
        batch.commit()
    return count


# ========================================================================
# Catalog  (collection: books)
# ========================================================================

@_logged_write
def upsert_book(book):
    """Merge-write catalog metadata for a book. Returns the book doc ID."""
    record = BookRecord.from_dict(book)
    if not record.key:
        raise ValueError('book key is required')
    doc_id = record.doc_id
    payload = record.to_dict()
    payload['updatedAt'] = _now()
    get_db().collection(BOOKS).document(doc_id).set(payload, merge=True)
    logger.info('Book saved: %s (%s)', record.title, doc_id)
    return doc_id


@_read_or_default(bool)
def book_exists(key):
    """Check whether a catalog record exists for the given book key."""
    return get_db().collection(BOOKS).document(book_doc_id(key)).get().exists


@_read_or_default(_none)
def get_book(key):
    """Get catalog metadata for a book key, falling back to the custom catalog."""
    doc = get_db().collection(BOOKS).document(book_doc_id(key)).get()
    if doc.exists:
        return _doc_to_dict(doc)
    if is_custom_key(key):
        return get_custom_book_details(key)
    return None


# ========================================================================
# Custom Catalog  (collection: custom_books)
# ========================================================================

def _custom_book_ref(key):
    return get_db().collection(CUSTOM_BOOKS).document(key[len(CUSTOM_PREFIX):])


@_logged_write
def add_custom_book(data, created_by=None):
    """Create a user-submitted book. Returns its public key ('custom_<autoId>').

    The key is written back into the record so lookups by key work the
    same way as for catalog books.
    """
    record = CustomBookRecord.from_dict(data)
    if not record.title:
        raise ValueError('title is required')
    if created_by is not None:
        record.created_by = int(created_by)
    payload = record.to_dict()
    now = _now()
    payload['createdAt'] = now
    payload['updatedAt'] = now
    _, doc_ref = get_db().collection(CUSTOM_BOOKS).add(payload)
    key = f'{CUSTOM_PREFIX}{doc_ref.id}'
    doc_ref.update({'key': key})
    logger.info('Custom book created: %s (%s)', record.title, key)
    return key


@_read_or_default(_none)
def get_custom_book_details(key):
    """Get a custom book by its public key. Returns dict or None."""
    if not is_custom_key(key):
        return None
    return _doc_to_dict(_custom_book_ref(key).get())


@_logged_write
def update_custom_book(key, data):
    """Merge-update editable fields of a custom book. Returns False if it does not exist.

    A custom book that has been logged also has a catalog record under
    books/{key}; the same fields are merged into it in one batch.
    """
    if not is_custom_key(key):
        raise ValueError(f'not a custom book key: {key}')
    ref = _custom_book_ref(key)
    if not ref.get().exists:
        return False
    record = CustomBookRecord.from_dict(data).to_dict()
    payload = {k: v for k, v in record.items() if k in CustomBookRecord.EDITABLE}
    payload['updatedAt'] = _now()

    batch = get_db().batch()
    batch.set(ref, payload, merge=True)
    catalog_ref = get_db().collection(BOOKS).document(book_doc_id(key))
    if catalog_ref.get().exists:
        batch.set(catalog_ref, payload, merge=True)
    batch.commit()
    return True


@_read_or_default(list)
def search_custom_books(text):
    """Case-insensitive substring match on title and authors.

    Scans the whole collection in memory; swap for an indexed search
    before the custom catalog grows large.
    """
    needle = (text or '').strip().lower()
    if not needle:
        return []
    results = []
    for doc in get_db().collection(CUSTOM_BOOKS).stream():
        book = _doc_to_dict(doc)
        haystack = [book.get('title') or ''] + list(book.get('author_name') or [])
        if any(needle in value.lower() for value in haystack):
            results.append(book)
    return results


# ========================================================================
# Sequence Allocator  (document: counters/users)
# ========================================================================

def _counter_ref():
    return get_db().collection(COUNTERS).document(USER_COUNTER)


def read_user_counter(transaction):
    """Current goodsID high-water mark, read inside a transaction (0 if absent)."""
    snapshot = _counter_ref().get(transaction=transaction)
    if not snapshot.exists:
        return 0
    return (snapshot.to_dict() or {}).get('count') or 0


def write_user_counter(transaction, value):
    transaction.set(_counter_ref(), {'count': value}, merge=True)


@_logged_write
def next_sequence():
    """Atomically allocate the next goodsID. Returns the new value."""
    @firestore.transactional
    def _increment(transaction):
        value = read_user_counter(transaction) + 1
        write_user_counter(transaction, value)
        return value

    return _increment(get_db().transaction())


# ========================================================================
# Users  (collection: users)
# ========================================================================

def _user_ref(fid):
    return get_db().collection(USERS).document(str(int(fid)))


@_read_or_default(_none)
def get_user_profile(fid):
    """Get a user profile by fid. Returns dict or None."""
    return _doc_to_dict(_user_ref(fid).get())


@_logged_write
def save_profile(profile):
    """Merge-write display fields of a profile. Returns the profile's goodsID.

    A goodsID is allocated on the first save only. The profile read, the
    counter increment and the profile write share one transaction, so two
    concurrent first saves cannot both allocate.
    """
    record = UserProfile.from_dict(profile)
    user_ref = _user_ref(record.fid)

    @firestore.transactional
    def _save(transaction):
        snapshot = user_ref.get(transaction=transaction)
        existing = snapshot.to_dict() if snapshot.exists else {}
        now = _now()
        data = record.to_dict()
        data['updatedAt'] = now
        if not snapshot.exists:
            data['createdAt'] = now
            data['currentPoints'] = 0
            data['notificationsEnabled'] = bool(profile.get('notificationsEnabled', False))

        goods_id = existing.get('goodsID')
        if goods_id is None:
            goods_id = read_user_counter(transaction) + 1
            data['goodsID'] = goods_id
            transaction.set(user_ref, data, merge=True)
            write_user_counter(transaction, goods_id)
        else:
            transaction.set(user_ref, data, merge=True)
        return goods_id

    goods_id = _save(get_db().transaction())
    logger.info('Profile saved for fid %s (goodsID %s)', record.fid, goods_id)
    return goods_id


@_logged_write
def set_notifications_enabled(fid, enabled):
    """Toggle the notification preference. Returns False if the profile does not exist."""
    ref = _user_ref(fid)
    if not ref.get().exists:
        return False
    ref.update({'notificationsEnabled': bool(enabled), 'updatedAt': _now()})
    return True


@_read_or_default(list)
def get_users_with_notifications_enabled():
    return _query_to_list(
        get_db().collection(USERS)
        .where(filter=FieldFilter('notificationsEnabled', '==', True))
    )


@_read_or_default(list)
def search_users(text):
    """Case-insensitive substring match on username and display name (full scan)."""
    needle = (text or '').strip().lower()
    if not needle:
        return []
    results = []
    for doc in get_db().collection(USERS).stream():
        user = _doc_to_dict(doc)
        names = (user.get('username') or '', user.get('displayName') or '')
        if any(needle in name.lower() for name in names):
            results.append(user)
    return results


# ========================================================================
# Points / Leaderboard
# ========================================================================

@_logged_write
def award_points(fid, amount):
    """Award points at most once per calendar day. Returns True if awarded."""
    if amount < 0:
        raise ValueError('amount must not be negative')
    day = today()
    user_ref = _user_ref(fid)

    @firestore.transactional
    def _award(transaction):
        snapshot = user_ref.get(transaction=transaction)
        if not snapshot.exists:
            return None
        if (snapshot.to_dict() or {}).get('lastPointsDate') == day:
            return False
        transaction.update(user_ref, {
            'currentPoints': firestore.Increment(amount),
            'lastPointsDate': day,
            'updatedAt': _now(),
        })
        return True

    awarded = _award(get_db().transaction())
    if awarded is None:
        logger.warning('Cannot award points to fid %s: no profile', fid)
        return False
    if awarded:
        logger.info('Awarded %s points to fid %s for %s', amount, fid, day)
    return awarded


@_read_or_default(list)
def get_leaderboard(limit=100):
    """Profiles ordered by currentPoints, highest first."""
    return _query_to_list(
        get_db().collection(USERS)
        .order_by('currentPoints', direction=firestore.Query.DESCENDING)
        .limit(limit)
    )


# ========================================================================
# User-Book Relationships  (collection: userBooks)
# ========================================================================

def _relationship_ref(user_fid, book_key):
    return get_db().collection(USER_BOOKS).document(relationship_id(user_fid, book_key))


def _check_status(status):
    if status not in STATUSES:
        raise ValueError(f'invalid status: {status}')


def _write_relationship(ref, data, status, now):
    """Merge-write a relationship, adding the fields that depend on whether it exists.

    The existence read and the write share a transaction, so a like that
    lands between them cannot be wiped by a stale likeCount of 0.
    """
    @firestore.transactional
    def _write(transaction):
        snapshot = ref.get(transaction=transaction)
        payload = dict(data)
        if not snapshot.exists:
            payload['loggedAt'] = now
            payload['likeCount'] = 0
        if status == STATUS_CURRENT:
            payload['startedReadingAt'] = now
        transaction.set(ref, payload, merge=True)

    _write(get_db().transaction())


@_logged_write
def save_relationship(user_fid, book, status, review=None):
    """Log a book into a user's library (create or merge-update). Returns the relationship ID."""
    _check_status(status)
    upsert_book(book)
    now = _now()
    record = UserBookRelationship.from_book(
        user_fid, BookRecord.from_dict(book), status, review=review, updated_at=now
    )
    ref = get_db().collection(USER_BOOKS).document(record.id)
    _write_relationship(ref, record.to_dict(), status, now)
    return record.id


@_logged_write
def update_status(user_fid, book_key, status):
    """Change only the status of a relationship. Returns the relationship ID."""
    _check_status(status)
    ref = _relationship_ref(user_fid, book_key)
    now = _now()
    _write_relationship(ref, {
        'userFid': int(user_fid),
        'bookKey': book_key,
        'status': status,
        'updatedAt': now,
    }, status, now)
    return ref.id


@_logged_write
def delete_relationship(user_fid, book_key):
    """Delete a relationship together with its logs and likes.

    Returns False if the relationship did not exist.
    """
    ref = _relationship_ref(user_fid, book_key)
    if not ref.get().exists:
        return False
    children = [doc.reference for doc in ref.collection(LOGS).stream()]
    children += [doc.reference for doc in ref.collection(LIKES).stream()]
    removed = _delete_in_batches(children + [ref])
    logger.info('Deleted relationship %s (%s documents)', ref.id, removed)
    return True


@_read_or_default(_none)
def get_relationship(user_fid, book_key):
    return _doc_to_dict(_relationship_ref(user_fid, book_key).get())


@_read_or_default(list)
def get_user_books(user_fid):
    """All relationships of a user, most recently updated first."""
    books = _query_to_list(
        get_db().collection(USER_BOOKS)
        .where(filter=FieldFilter('userFid', '==', int(user_fid)))
    )
    books.sort(key=lambda b: b.get('updatedAt') or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
    return books


def _attach_owners(relationships):
    """Add owner display fields to each relationship in place.

    A failed profile lookup leaves that relationship without display fields.
    """
    profiles = {}
    for rel in relationships:
        fid = rel.get('userFid')
        if fid not in profiles:
            try:
                profiles[fid] = _doc_to_dict(_user_ref(fid).get())
            except GoogleAPIError:
                logger.warning('Profile lookup failed for fid %s', fid, exc_info=True)
                profiles[fid] = None
        profile = profiles[fid]
        if profile:
            rel.update(compact({
                'username': profile.get('username'),
                'displayName': profile.get('displayName'),
                'pfpUrl': profile.get('pfpUrl'),
                'goodsID': profile.get('goodsID'),
            }))
    return relationships


@_read_or_default(list)
def get_book_users(book_key):
    """All relationships for a book, joined to their owners' profiles."""
    relationships = _query_to_list(
        get_db().collection(USER_BOOKS)
        .where(filter=FieldFilter('bookKey', '==', book_key))
    )
    return _attach_owners(relationships)


@_read_or_default(list)
def get_global_reviews(limit=20, viewer_fid=None):
    """Most recently updated relationships that carry a review."""
    query = (
        get_db().collection(USER_BOOKS)
        .order_by('updatedAt', direction=firestore.Query.DESCENDING)
    )
    reviews = []
    for doc in query.stream():
        rel = _doc_to_dict(doc)
        if (rel.get('review') or '').strip():
            reviews.append(rel)
            if len(reviews) >= limit:
                break
    _attach_owners(reviews)
    if viewer_fid is not None:
        for rel in reviews:
            rel['liked'] = check_like_status(rel['id'], viewer_fid)
    return reviews


# ========================================================================
# Reading Logs  (sub-collection: userBooks/{id}/logs)
# ========================================================================

@_logged_write
def add_log(user_fid, book_key, page, thoughts=None, unit=None, skipped=False):
    """Append a reading log entry. Returns the new entry's ID.

    Unless skipped, the parent's lastPageRead is updated afterwards in a
    separate write; the log stays the source of truth if that write fails.
    """
    ref = _relationship_ref(user_fid, book_key)
    now = _now()
    entry = ReadingLogEntry(page=int(page), date=now, thoughts=thoughts, unit=unit, skipped=bool(skipped))
    _, log_ref = ref.collection(LOGS).add(entry.to_dict())
    if not entry.skipped:
        ref.set({'lastPageRead': entry.page, 'updatedAt': now}, merge=True)
    return log_ref.id


@_read_or_default(list)
def get_logs(user_fid, book_key):
    """All log entries of a relationship, oldest first (ties keep store order)."""
    logs = _query_to_list(_relationship_ref(user_fid, book_key).collection(LOGS))
    logs.sort(key=lambda entry: entry.get('date') or datetime.min.replace(tzinfo=timezone.utc))
    return logs


# ========================================================================
# Likes  (sub-collection: userBooks/{id}/likes)
# ========================================================================

@_logged_write
def toggle_like(rel_id, liker_fid):
    """Like or unlike a review. Returns the new liked state, or None if the review does not exist.

    The like document and the parent's likeCount change in one transaction.
    """
    rel_ref = get_db().collection(USER_BOOKS).document(rel_id)
    like = LikeRecord(liker_fid=int(liker_fid), liked_at=_now())
    like_ref = rel_ref.collection(LIKES).document(like.doc_id)

    @firestore.transactional
    def _toggle(transaction):
        rel_snapshot = rel_ref.get(transaction=transaction)
        if not rel_snapshot.exists:
            return None
        like_snapshot = like_ref.get(transaction=transaction)
        count = (rel_snapshot.to_dict() or {}).get('likeCount') or 0
        if like_snapshot.exists:
            transaction.delete(like_ref)
            transaction.update(rel_ref, {'likeCount': max(count - 1, 0)})
            return False
        transaction.set(like_ref, like.to_dict())
        transaction.update(rel_ref, {'likeCount': count + 1})
        return True

    return _toggle(get_db().transaction())


@_read_or_default(bool)
def check_like_status(rel_id, liker_fid):
    return (
        get_db().collection(USER_BOOKS).document(rel_id)
        .collection(LIKES).document(str(int(liker_fid)))
        .get().exists
    )
