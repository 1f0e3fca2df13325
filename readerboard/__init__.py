import logging

from flask import Flask, jsonify
from google.api_core.exceptions import GoogleAPIError

from config import Config

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    # Initialize Firebase
    if app.config.get('FIREBASE_ENABLED', True):
        from readerboard.firebase_init import init_firebase
        init_firebase(app.config)

    @app.errorhandler(GoogleAPIError)
    def store_error(error):
        logger.error('Unhandled store error: %s', error)
        return jsonify({'success': False, 'error': 'Store unavailable'}), 500

    @app.errorhandler(ValueError)
    def invalid_value(error):
        return jsonify({'error': str(error)}), 400

    # Register blueprints
    from readerboard.routes import main, users, library, reviews, books, admin, cron
    app.register_blueprint(main.bp)
    app.register_blueprint(users.bp)
    app.register_blueprint(library.bp)
    app.register_blueprint(reviews.bp)
    app.register_blueprint(books.bp)
    app.register_blueprint(admin.bp)
    app.register_blueprint(cron.bp)

    return app
