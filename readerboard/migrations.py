"""
One-shot administrative repairs over the users collection.

Each procedure scans the whole collection inside a single transaction (or
write batch), so it is bounded by Firestore's 500-writes-per-commit limit.
A larger user base needs a paginated job instead.
"""

import logging
from datetime import datetime

from firebase_admin import firestore

from readerboard.firebase_init import get_db
from readerboard import firestore_dao as dao

logger = logging.getLogger(__name__)

LEGACY_SEQUENCE_FIELD = 'joinNumber'


def _fid_of(snapshot, data):
    fid = data.get('fid')
    if fid is None:
        try:
            fid = int(snapshot.id)
        except ValueError:
            fid = 0
    return fid


def _join_order(item):
    """Sort key approximating join order: createdAt, then fid.

    Profiles without createdAt sort first, as if created at the epoch.
    """
    snapshot, data = item
    created_at = data.get('createdAt')
    timestamp = created_at.timestamp() if isinstance(created_at, datetime) else 0
    return (timestamp, _fid_of(snapshot, data))


def _all_users(transaction=None):
    users_ref = get_db().collection(dao.USERS)
    return [(doc, doc.to_dict() or {}) for doc in users_ref.stream(transaction=transaction)]


def backfill_goods_ids():
    """Assign goodsIDs to profiles that lack one, continuing from the counter.

    A second run finds nothing to do and writes nothing.
    """
    @firestore.transactional
    def _backfill(transaction):
        users = _all_users(transaction)
        pending = [item for item in users if item[1].get('goodsID') is None]
        if not pending:
            return {'count': 0, 'message': 'No users need backfill'}

        pending.sort(key=_join_order)
        next_count = dao.read_user_counter(transaction)
        for snapshot, _ in pending:
            next_count += 1
            transaction.set(snapshot.reference, {'goodsID': next_count}, merge=True)
        dao.write_user_counter(transaction, next_count)
        return {'count': len(pending), 'lastId': next_count}

    result = _backfill(get_db().transaction())
    logger.info('Backfill assigned goodsIDs to %s users', result['count'])
    return result


def remove_join_number():
    """Delete the legacy joinNumber field from every profile that has it."""
    batch = get_db().batch()
    count = 0
    pending = 0
    for snapshot, data in _all_users():
        if LEGACY_SEQUENCE_FIELD not in data:
            continue
        batch.update(snapshot.reference, {LEGACY_SEQUENCE_FIELD: firestore.DELETE_FIELD})
        count += 1
        pending += 1
        if pending >= dao.BATCH_LIMIT:
            batch.commit()
            batch = get_db().batch()
            pending = 0
    if pending:
        batch.commit()

    logger.info('Removed %s from %s users', LEGACY_SEQUENCE_FIELD, count)
    return {'count': count, 'message': f'Removed {LEGACY_SEQUENCE_FIELD} from {count} users'}


def reset_goods_ids(overrides):
    """Reassign every goodsID.

    Profiles listed in `overrides` (fid -> goodsID) get their fixed number;
    everyone else is numbered in join order starting after the highest
    override. The counter ends at the highest number assigned.

    This overwrites existing goodsIDs. Re-running it after new users have
    joined renumbers them too, so check the overrides are still current.
    """
    overrides = {int(fid): int(goods_id) for fid, goods_id in (overrides or {}).items()}

    @firestore.transactional
    def _reset(transaction):
        users = _all_users(transaction)
        max_id = max(overrides.values(), default=0)

        manual = 0
        unassigned = []
        for snapshot, data in users:
            fid = _fid_of(snapshot, data)
            if fid in overrides:
                transaction.set(snapshot.reference, {'goodsID': overrides[fid]}, merge=True)
                manual += 1
            else:
                unassigned.append((snapshot, data))

        unassigned.sort(key=_join_order)
        next_id = max_id + 1 if overrides else 1
        for snapshot, _ in unassigned:
            transaction.set(snapshot.reference, {'goodsID': next_id}, merge=True)
            max_id = next_id
            next_id += 1

        dao.write_user_counter(transaction, max_id)
        return {
            'manualAssignments': manual,
            'autoAssignments': len(unassigned),
            'totalUsers': len(users),
            'maxId': max_id,
        }

    result = _reset(get_db().transaction())
    logger.warning('goodsIDs reset for %s users (max %s)', result['totalUsers'], result['maxId'])
    return result
