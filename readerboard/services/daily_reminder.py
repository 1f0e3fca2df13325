import logging

from readerboard import firestore_dao as dao
from readerboard.services.notifications import DAILY_REMINDER, send_notification

logger = logging.getLogger(__name__)


def send_daily_notifications():
    """Remind opted-in users who have not earned today's points yet."""
    users = dao.get_users_with_notifications_enabled()
    logger.info('[Cron] Found %s users with notifications enabled.', len(users))

    day = dao.today()
    sent = 0
    skipped = 0
    for user in users:
        fid = user.get('fid') or int(user['id'])
        # Re-read: the query result may predate a points award
        profile = dao.get_user_profile(fid)
        if profile and profile.get('lastPointsDate') == day:
            logger.info('[Cron] User %s already earned points today. Skipping notification.', fid)
            skipped += 1
            continue
        if send_notification(fid, DAILY_REMINDER):
            sent += 1

    return {'sentCount': sent, 'totalEnabled': len(users), 'skipped': skipped}
