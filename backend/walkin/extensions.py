# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def _unicode_lower(value):
    return value.lower() if value is not None else None


def install_sqlite_functions(engine) -> None:
    """
    Replace SQLite's ASCII-only lower() with Python's str.lower on every connection.

    The case-insensitive unique indexes and name checks compare lower(name)
    against Python-lowered values, so both sides must fold the same way.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def register_lower(dbapi_connection, connection_record):
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
