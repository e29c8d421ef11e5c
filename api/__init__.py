from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models import storage
from models.session_store import SessionStore, build_session_store
from utils.guard import SessionGuard
from utils.security import TokenIssuer

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Storefront Auth API",
        "version": "1.0.0",
        "description": "Signup, login, token refresh, profile and logout for the storefront.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, session_store: SessionStore | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    Signing secrets are checked here, so a misconfigured deployment fails at
    startup with ConfigurationError instead of on the first login.
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))

    # Token issuer, session store and the guard that ties them together
    issuer = TokenIssuer.from_config(app.config)
    store = session_store or build_session_store(app.config)
    app.extensions["session_guard"] = SessionGuard(
        issuer,
        store,
        rotate_refresh_tokens=app.config.get("REFRESH_TOKEN_ROTATION", False),
    )

    storage.reload(app.config["DATABASE_URL"])

    # Cookies travel cross-origin from the SPA, so credentials must be allowed
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
        supports_credentials=True,
        expose_headers=["X-Access-Token"],
    )

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the Storefront Auth API",
            "docs": "/apidocs/",
            "health": "/api/health",
        }, 200

    return app
