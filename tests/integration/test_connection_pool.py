"""
Integration tests for the database connection pool

Tests the PostgreSQL connection pool functionality using testcontainers.
"""
import pytest
from psycopg.conninfo import conninfo_to_dict

from inventory_export.storage.connection import DatabaseConnectionPool


def make_pool(postgres_container, **kwargs) -> DatabaseConnectionPool:
    return DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_inventory",
        user="test_export",
        password="test_password",
        **kwargs,
    )


@pytest.mark.integration
def test_connection_pool_initialization(postgres_container):
    """Test that connection pool initializes correctly"""
    pool = make_pool(postgres_container, min_size=2, max_size=5)

    pool.open()

    assert pool.is_open
    assert pool._pool.min_size == 2
    assert pool._pool.max_size == 5

    pool.close()
    assert not pool.is_open


@pytest.mark.integration
def test_get_connection(postgres_container):
    """Test getting a connection from the pool"""
    with make_pool(postgres_container) as pool:
        with pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 as test")
                result = cur.fetchone()
                assert result["test"] == 1


@pytest.mark.integration
def test_execute_command_and_query(postgres_container):
    """Test commands report affected rows and queries return dict rows"""
    with make_pool(postgres_container) as pool:
        pool.execute_command("CREATE TABLE IF NOT EXISTS pool_probe (id INT PRIMARY KEY, label TEXT)")
        pool.execute_command("DELETE FROM pool_probe")

        inserted = pool.execute_command(
            "INSERT INTO pool_probe (id, label) VALUES (%s, %s), (%s, %s)",
            (1, "first", 2, "second"),
        )
        rows = pool.execute_query("SELECT id, label FROM pool_probe ORDER BY id")

        assert inserted == 2
        assert rows == [{"id": 1, "label": "first"}, {"id": 2, "label": "second"}]

        pool.execute_command("DROP TABLE pool_probe")


@pytest.mark.integration
def test_unopened_pool_raises():
    """Test that using a pool before open() fails clearly"""
    pool = DatabaseConnectionPool(password="unused")

    with pytest.raises(RuntimeError, match="not open"):
        with pool.get_connection():
            pass


@pytest.mark.unit
def test_password_required():
    """Test that a pool without password or conninfo is rejected"""
    with pytest.raises(ValueError, match="Database password must be provided"):
        DatabaseConnectionPool(password=None)


@pytest.mark.unit
def test_from_settings():
    """Test building a pool from settings"""
    from inventory_export.config import ExportSettings

    settings = ExportSettings(db_host="db.internal", db_port=6543, db_name="assets", db_password="pw")
    pool = DatabaseConnectionPool.from_settings(settings, max_size=3)

    assert pool.host == "db.internal"
    assert pool.max_size == 3
    assert "port=6543" in pool.conninfo
    assert "dbname=assets" in pool.conninfo


@pytest.mark.unit
def test_conninfo_quotes_special_characters():
    """Test that passwords with spaces and quotes survive the connection string"""
    pool = DatabaseConnectionPool(host="db.internal", user="export user", password="p@ss word's")

    params = conninfo_to_dict(pool.conninfo)

    assert params["password"] == "p@ss word's"
    assert params["user"] == "export user"
    assert params["host"] == "db.internal"
