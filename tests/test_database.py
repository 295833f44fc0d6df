from sqlalchemy import create_engine, inspect

from image_gateway.database import engine_options, init_db
from image_gateway.logging_config import QUIET_LOGGERS, build_logging_config


def test_engine_options_sqlite_shares_connections_across_threads():
    assert engine_options("sqlite://") == {"connect_args": {"check_same_thread": False}}


def test_engine_options_server_database_pings():
    assert engine_options("postgresql://gateway:secret@db:5432/photo") == {"pool_pre_ping": True}


def test_init_db_creates_tables():
    engine = create_engine("sqlite://")

    init_db(bind=engine)

    assert {"users", "generations"} <= set(inspect(engine).get_table_names())
    engine.dispose()


def test_build_logging_config_levels():
    logging_config = build_logging_config("DEBUG")

    assert logging_config["loggers"]["image_gateway"]["level"] == "DEBUG"
    assert logging_config["loggers"][""]["handlers"] == ["default"]
    for name in QUIET_LOGGERS:
        assert logging_config["loggers"][name]["level"] == "WARNING"
    assert logging_config["formatters"]["json"]["static_fields"] == {"service": "image-gateway"}
