import logging

from flask import Flask, jsonify
from pymongo import MongoClient

from config import Config
from utils.credentials import MongoCredentialStore
from utils.db import MongoDocumentStore, init_db_connection
from utils.errors import PortalError
from utils.mailer import SmtpMailer
from utils.services import PortalServices

# Import controllers
from controllers.auth_controller import auth_bp
from controllers.security_controller import security_bp
from controllers.privacy_controller import privacy_bp
from controllers.mayor_controller import mayor_bp
from controllers.monitor_controller import monitor_bp
from controllers.notifications_controller import notifications_bp
from controllers.posts_controller import posts_bp

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def build_services(app):
    """Wire the Mongo-backed collaborators from the app config."""
    init_db_connection(app)
    store = MongoDocumentStore.from_flask(app)

    mirror = None
    if app.config.get("MIRROR_MONGO_URI"):
        client = MongoClient(app.config["MIRROR_MONGO_URI"])
        mirror = MongoDocumentStore(client.get_default_database())

    return PortalServices(
        app.config,
        store,
        MongoCredentialStore(store),
        SmtpMailer.from_config(app.config),
        mirror=mirror,
    )


def create_app(config_object=Config, services=None):
    app = Flask(__name__)               # Initialize Flask app
    app.config.from_object(config_object)

    if services is None:
        services = build_services(app)
    app.extensions["portal"] = services

    # Register Blueprint
    app.register_blueprint(auth_bp)
    app.register_blueprint(security_bp)
    app.register_blueprint(privacy_bp)
    app.register_blueprint(mayor_bp)
    app.register_blueprint(monitor_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(posts_bp)

    # Every service failure reaches the browser as {"error": ..., "message": ...}
    @app.errorhandler(PortalError)
    def portal_error(error):
        return jsonify(error.to_dict()), error.status_code

    return app


# Run the app
if __name__ == "__main__":
    create_app().run(debug=True)
