from flask import Flask, jsonify
from ecofinds.extensions import (
    db,
    migrate,
    login_manager,
    identity,
    setup_sqlite_transactions,
)
from ecofinds.config import Config
from ecofinds.middleware import setup_auth_middleware, setup_error_handlers
import logging
import os

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(os.environ.get('LOG_FILE', 'app.log')),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    identity.init_app(app)
    setup_sqlite_transactions(app)

    # Register blueprints
    from ecofinds.blueprints import (
        auth,
        cart,
        messages,
        orders,
        products,
        users,
    )

    # Blueprints use absolute /api/... routes.
    app.register_blueprint(auth.bp, url_prefix='/')
    app.register_blueprint(products.bp, url_prefix='/')
    app.register_blueprint(cart.bp, url_prefix='/')
    app.register_blueprint(orders.bp, url_prefix='/')
    app.register_blueprint(messages.bp, url_prefix='/')
    app.register_blueprint(users.bp, url_prefix='/')

    # Bearer token auth (site-wide protection of /api/*)
    setup_auth_middleware(app)
    setup_error_handlers(app)

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'OK', 'message': 'EcoFinds API is running'})

    # Note: Database tables are managed via Flask-Migrate
    # Use 'flask db upgrade' to create/update tables

    logger.info("Flask application initialized")
    return app
