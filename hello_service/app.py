import logging

from flask import Flask, jsonify
from flask_cors import CORS

from hello_service.config import settings as default_settings


# =======================================================
# Application factory
# =======================================================
def create_app(settings=None):
    settings = settings or default_settings

    app = Flask(__name__)
    app.config['GREETING'] = settings.greeting
    CORS(app, resources={r"/*": {"origins": list(settings.cors_origins)}})

    # Under gunicorn, reuse its error log handlers so app.logger output
    # ends up in the same stream as the worker logs.
    gunicorn_logger = logging.getLogger('gunicorn.error')
    if gunicorn_logger.handlers:
        app.logger.handlers = gunicorn_logger.handlers
        app.logger.setLevel(gunicorn_logger.level)

    # Greeting
    @app.route('/', methods=['GET'])
    def hello():
        return app.config['GREETING'], 200, {'Content-Type': 'text/plain; charset=utf-8'}

    @app.route('/health', methods=['GET'])
    def health():
        """Health check for load balancer target groups."""
        return jsonify({"status": "healthy"}), 200

    return app


# =======================================================
# gunicorn entry point (Dockerfile: hello_service.app:app)
# =======================================================
app = create_app()
