import os
from datetime import timedelta

import click
from flask import Flask
from flask_cors import CORS

from payroll_api.extensions import db, migrate, jwt, normalize_db_url, engine_options
from payroll_api.models import load_all


def create_app(config_object=None):
    app = Flask(__name__)

    # Basic inline config (defaults)
    db_url = normalize_db_url(os.getenv("DATABASE_URL", "sqlite:///payroll.db"))
    app.config["SQLALCHEMY_DATABASE_URI"] = db_url
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options(db_url)
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=24)
    app.config["JWT_DECODE_LEEWAY"] = 120  # 2 minutes grace for clock skew
    app.json.ensure_ascii = False  # component names may be Chinese

    # signature images live next to the package unless told otherwise
    backend_root = os.path.dirname(app.root_path)
    app.config["UPLOADS_ROOT"] = os.getenv("UPLOADS_ROOT", os.path.join(backend_root, "uploads"))
    app.config["SIGN_TOKEN_TTL_DAYS"] = int(os.getenv("SIGN_TOKEN_TTL_DAYS", "7"))
    app.config["SIGN_BASE_URL"] = os.getenv("SIGN_BASE_URL", "/web/sign-resignation.html")
    app.config["PAYROLL_VIEW_URL"] = os.getenv("PAYROLL_VIEW_URL", "/web/payroll.html")

    if config_object:
        if isinstance(config_object, dict):
            app.config.update(config_object)
        else:
            try:
                app.config.from_object(config_object)
            except Exception as e:
                # Just log and continue with defaults
                app.logger.warning("Could not import config object %r: %s", config_object, e)
        # a test/config override of the URI needs matching engine options
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options(app.config["SQLALCHEMY_DATABASE_URI"])

    # CORS (dev)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Extensions
    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # Ensure models are loaded so metadata is complete
    with app.app_context():
        load_all()

    # Blueprints
    from payroll_api.common import auth as _auth  # noqa: F401  (registers JWT loaders)
    from payroll_api.common.errors import bp_errors
    from payroll_api.blueprints.health import bp as health_bp
    from payroll_api.blueprints.auth import bp as auth_bp
    from payroll_api.blueprints.client_info import bp as client_info_bp
    from payroll_api.blueprints.employees import bp as employees_bp
    from payroll_api.blueprints.templates import bp as templates_bp
    from payroll_api.blueprints.payrolls import bp as payrolls_bp
    from payroll_api.blueprints.notifications import bp as notifications_bp
    from payroll_api.blueprints.resignations import bp as resignations_bp
    from payroll_api.blueprints.resignation_reports import bp as resignation_reports_bp
    from payroll_api.blueprints.uploads import bp as uploads_bp

    app.register_blueprint(bp_errors)
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(client_info_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(templates_bp)
    app.register_blueprint(payrolls_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(resignations_bp)
    app.register_blueprint(resignation_reports_bp)
    app.register_blueprint(uploads_bp)

    # ----------------- CLI COMMANDS -----------------

    @app.cli.command("create-admin")
    @click.option("--username", prompt=True)
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    def create_admin(username, password):
        """Create an admin user, or reset the password of an existing one."""
        from payroll_api.models.admin_user import AdminUser

        username = username.strip()
        if not username or not password:
            raise click.BadParameter("username and password are required")
        user = AdminUser.query.filter_by(username=username).first()
        created = user is None
        if created:
            user = AdminUser(username=username, is_active=True)
            db.session.add(user)
        user.set_password(password)
        db.session.commit()
        click.echo(f"Admin {username} {'created' if created else 'updated'}")

    return app
