from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from sqlalchemy import event

from ecofinds.services.identity_service import IdentityService

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
identity = IdentityService()


def setup_sqlite_transactions(app):
    """Let SQLAlchemy, not pysqlite, emit BEGIN on SQLite engines.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT
    opened before any write becomes the outer transaction and its RELEASE
    commits. With explicit BEGIN, savepoints nest inside the session's
    transaction.
    """
    with app.app_context():
        engine = db.engine
    if engine.dialect.name != 'sqlite':
        return

    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _emit_begin(conn):
        conn.exec_driver_sql('BEGIN')
