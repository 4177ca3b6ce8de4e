import logging
import os
from flask import Flask, jsonify
from flask_cors import CORS
from config import Config
from errors import ServiceError
from extensions import db
from routes.api import api_bp
from routes.auth import auth_bp
from routes.projects import projects_bp
from routes.users import users_bp
from services.gateway import GenerationGateway

logger = logging.getLogger(__name__)


def create_app(config_object=Config, gateway=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if "sqlite" in uri and "instance" in uri:
        instance_dir = app.instance_path
        os.makedirs(instance_dir, exist_ok=True)
        db_path = os.path.join(instance_dir, "sitebuilder.db")
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///" + db_path.replace("\\", "/")

    CORS(app, origins=app.config.get("FRONTEND_URL") or "*", supports_credentials=True)
    db.init_app(app)

    if gateway is None:
        gateway = GenerationGateway(
            api_key=app.config.get("OPENAI_API_KEY", ""),
            model=app.config["OPENAI_MODEL"],
            base_url=app.config["OPENAI_BASE_URL"],
            timeout=app.config["GENERATION_TIMEOUT_SECONDS"],
        )
    if not app.config.get("OPENAI_API_KEY") and isinstance(gateway, GenerationGateway):
        logger.warning("OPENAI_API_KEY is not set; AI generation requests will fail")
    app.extensions["generation_gateway"] = gateway

    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            logger.exception("db.create_all failed: %s", e)
            raise

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Route not found", "kind": "not_found"}), 404

    app.register_blueprint(api_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(projects_bp)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
