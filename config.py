import os
from dotenv import load_dotenv

load_dotenv()


def _parse_overrides(raw):
    """Parse 'fid:goodsID,fid:goodsID' into a dict of ints."""
    overrides = {}
    for pair in raw.split(','):
        pair = pair.strip()
        if not pair:
            continue
        fid, goods_id = pair.split(':', 1)
        overrides[int(fid)] = int(goods_id)
    return overrides


class Config:
    SECRET_KEY = os.environ.get('SESSION_SECRET') or os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    FIREBASE_PROJECT_ID = os.environ.get('FIREBASE_PROJECT_ID')
    FIREBASE_CLIENT_EMAIL = os.environ.get('FIREBASE_CLIENT_EMAIL')
    FIREBASE_PRIVATE_KEY = os.environ.get('FIREBASE_PRIVATE_KEY')
    FIREBASE_ENABLED = True

    # Calendar day boundary for daily points
    POINTS_TIMEZONE = os.environ.get('POINTS_TIMEZONE', 'UTC')
    DAILY_LOG_POINTS = int(os.environ.get('DAILY_LOG_POINTS', 10))
    LEADERBOARD_LIMIT = int(os.environ.get('LEADERBOARD_LIMIT', 100))
    FEED_LIMIT = int(os.environ.get('FEED_LIMIT', 20))

    HOST_URL = os.environ.get('NEXT_PUBLIC_HOST') or os.environ.get('HOST_URL') or 'http://localhost:8080'
    OPEN_LIBRARY_URL = os.environ.get('OPEN_LIBRARY_URL', 'https://openlibrary.org')
    NEYNAR_API_KEY = os.environ.get('NEYNAR_API_KEY')
    NEYNAR_API_URL = os.environ.get('NEYNAR_API_URL', 'https://api.neynar.com/v2/farcaster')

    CRON_SECRET = os.environ.get('CRON_SECRET')
    ADMIN_SECRET = os.environ.get('ADMIN_SECRET')
    GOODS_ID_OVERRIDES = _parse_overrides(
        os.environ.get('GOODS_ID_OVERRIDES', '999999:0,1020698:1,1044526:2')
    )


class TestConfig(Config):
    TESTING = True
    FIREBASE_ENABLED = False
    CRON_SECRET = None
    ADMIN_SECRET = None
    POINTS_TIMEZONE = 'UTC'
    NEYNAR_API_KEY = 'test-key'
