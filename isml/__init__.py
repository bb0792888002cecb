import os

from flask import Flask
from flask_cors import CORS

from isml.config import Config


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Editors and dashboards running locally
    allowed_origins = [
        'http://localhost:5173',  # Vite dev server
        'http://localhost:3000',
    ]

    # Origins from the environment (comma separated)
    env_origins = app.config.get('CORS_ORIGINS') or os.getenv('CORS_ORIGINS', '')
    if env_origins:
        allowed_origins.extend([origin.strip() for origin in env_origins.split(',') if origin.strip()])

    CORS(app,
         resources={r"/api/*": {"origins": allowed_origins}},
         supports_credentials=False,
         allow_headers=["Content-Type"],
         methods=["GET", "POST", "OPTIONS"])

    from isml.routes import templates
    app.register_blueprint(templates.templates_bp)

    # Health check endpoint
    from isml.routes import health
    app.register_blueprint(health.bp)

    return app
