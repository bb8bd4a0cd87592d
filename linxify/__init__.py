from flask import Flask

from linxify.api import api_bp
from linxify.auth import auth_bp
from linxify.config import Config
from linxify.extensions import db, login_manager, migrate
from linxify.jobs.scheduler import start_scheduler
from linxify.web import web_bp


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Linxify database.")

    @app.context_processor
    def inject_globals():
        return {"app_name": "Linxify"}

    with app.app_context():
        db.create_all()

    start_scheduler(app)
    return app
