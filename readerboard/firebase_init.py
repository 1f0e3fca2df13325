import os
import logging

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)

_app = None
_db = None


def _load_credentials(app_config):
    project_id = app_config.get('FIREBASE_PROJECT_ID') if app_config else None
    client_email = app_config.get('FIREBASE_CLIENT_EMAIL') if app_config else None
    private_key = app_config.get('FIREBASE_PRIVATE_KEY') if app_config else None

    if project_id and client_email and private_key:
        return credentials.Certificate({
            'type': 'service_account',
            'project_id': project_id,
            'client_email': client_email,
            'private_key': private_key.replace('\\n', '\n'),
            'token_uri': 'https://oauth2.googleapis.com/token',
        })

    cred_path = os.environ.get('GOOGLE_APPLICATION_CREDENTIALS', './firebase-service-account.json')
    if os.path.exists(cred_path):
        return credentials.Certificate(cred_path)
    return credentials.ApplicationDefault()


def init_firebase(app_config=None):
    global _app, _db

    if _app is not None:
        return

    _app = firebase_admin.initialize_app(_load_credentials(app_config))
    _db = firestore.client()
    logger.info('Firebase initialized for project %s', _app.project_id)


def get_db():
    global _db
    if _db is None:
        init_firebase()
    return _db


def set_db(client):
    """Install a Firestore client directly (used by tests and scripts)."""
    global _db
    _db = client
