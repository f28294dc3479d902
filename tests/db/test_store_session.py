import pytest
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rpckeys.core.errors import StoreUnavailable
from rpckeys.db.session import _engine_options, create_store_engine, store_errors

SLOW_QUERY = text(
    "WITH RECURSIVE counter(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM counter WHERE x < 500000000) "
    "SELECT count(*) FROM counter"
)


class TestStatementTimeout:
    def test_postgres_statement_timeout_is_set_on_connect(self):
        options = _engine_options("postgresql://db/rpckeys", statement_timeout=2.5)
        assert options["connect_args"]["options"] == "-c statement_timeout=2500"

    def test_mysql_read_and_write_timeouts(self):
        options = _engine_options("mysql+pymysql://db/rpckeys", statement_timeout=3)
        assert options["connect_args"]["read_timeout"] == 3
        assert options["connect_args"]["write_timeout"] == 3

    def test_zero_disables_statement_timeout(self):
        options = _engine_options("postgresql://db/rpckeys", statement_timeout=0)
        assert "options" not in options["connect_args"]

    def test_slow_sqlite_query_is_store_unavailable(self):
        engine = create_store_engine("sqlite://", statement_timeout=0.05, poolclass=StaticPool)
        db = sessionmaker(bind=engine)()
        try:
            with pytest.raises(StoreUnavailable) as exc_info:
                with store_errors(db, "slow query"):
                    db.execute(SLOW_QUERY).scalar()
            assert exc_info.value.status_code == 503
            assert "interrupted" not in exc_info.value.detail

            # the connection is usable again after the interrupt
            assert db.execute(text("SELECT 1")).scalar() == 1
        finally:
            db.close()
            engine.dispose()

    def test_fast_sqlite_query_is_not_interrupted(self):
        engine = create_store_engine("sqlite://", statement_timeout=5, poolclass=StaticPool)
        db = sessionmaker(bind=engine)()
        try:
            with store_errors(db, "fast query"):
                assert db.execute(text("SELECT 40 + 2")).scalar() == 42
        finally:
            db.close()
            engine.dispose()
