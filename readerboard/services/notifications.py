"""Neynar client for frame notifications and user scores."""

import logging
import uuid

import requests
from flask import current_app

logger = logging.getLogger(__name__)

TIMEOUT = (2.5, 5)
DAILY_REMINDER = 'Earn daily points for the READERBOARD by logging your pages read (or not-read) today!'


def _headers():
    return {
        'accept': 'application/json',
        'api_key': current_app.config.get('NEYNAR_API_KEY') or '',
    }


def _api_url(path):
    return current_app.config['NEYNAR_API_URL'].rstrip('/') + path


def send_notification(fid, message, title='Readerboard'):
    """Send a frame notification to one user. Returns True on success, never raises."""
    if not current_app.config.get('NEYNAR_API_KEY'):
        logger.error('NEYNAR_API_KEY is missing; cannot notify fid %s', fid)
        return False
    payload = {
        'target_fids': [int(fid)],
        'notification': {
            'title': title,
            'body': message,
            'target_url': current_app.config['HOST_URL'],
            'uuid': str(uuid.uuid4()),
        },
    }
    try:
        response = requests.post(_api_url('/frame/notifications'), json=payload,
                                 headers=_headers(), timeout=TIMEOUT)
        response.raise_for_status()
    except requests.RequestException:
        logger.exception('Notification to fid %s failed', fid)
        return False
    return True


def get_user_score(fid):
    """Neynar user score for a fid, 0 when absent, None when the lookup fails."""
    if not current_app.config.get('NEYNAR_API_KEY'):
        logger.error('NEYNAR_API_KEY is missing')
        return None
    try:
        response = requests.get(_api_url('/user/bulk'), params={'fids': int(fid)},
                                headers=_headers(), timeout=TIMEOUT)
        response.raise_for_status()
        users = response.json().get('users') or []
    except (requests.RequestException, ValueError):
        logger.exception('Error fetching Neynar score for fid %s', fid)
        return None
    if not users:
        return None
    return (users[0].get('experimental') or {}).get('neynar_user_score', 0)
