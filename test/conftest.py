"""
Test Configuration and Fixtures

This module provides:
- Test environment variables (set before any application import)
- PostgreSQL test database setup and per-test cleanup for integration tests

Architecture:
- Unit tests (test/**/unit/): Override fixtures with no-ops in their own conftest.py
- Integration tests: Use a real PostgreSQL database, skipped when it is unreachable
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read at import time
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['POSTGRES_DB'] = 'carpool_test_db'
    else:
        os.environ['POSTGRES_DB'] = f'carpool_test_db_{worker_id}'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ.setdefault('DB_POOL_SIZE', '5')
    os.environ.setdefault('DB_POOL_MAX_OVERFLOW', '2')
    os.environ.setdefault('DB_LOCK_TIMEOUT_MS', '5000')
    os.environ['DB_CREATE_TABLES_ON_STARTUP'] = 'false'


_early_setup_test_environment()

from collections.abc import AsyncGenerator  # noqa: E402

from dotenv import load_dotenv  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402


# =============================================================================
# Pytest Hooks: Detect test type and setup accordingly
# =============================================================================
def _is_unit_test_only_run(config: pytest.Config) -> bool:
    markexpr = config.getoption('markexpr', default='')
    if markexpr and 'unit' in str(markexpr) and 'not unit' not in str(markexpr):
        return True

    args = config.args or []
    test_paths = [arg for arg in args if arg and not arg.startswith('-')]
    return bool(test_paths and all('/unit/' in path or '\\unit\\' in path for path in test_paths))


_database_unavailable_reason: str | None = None


def pytest_sessionstart(session: pytest.Session) -> None:
    global _database_unavailable_reason
    if _is_unit_test_only_run(session.config):
        return

    import asyncio

    try:
        asyncio.run(_setup_test_database())
    except Exception as e:  # connection refused, bad credentials, missing server
        _database_unavailable_reason = f'PostgreSQL not reachable: {type(e).__name__}: {e}'


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        markers = [m.name for m in item.iter_markers()]
        if 'unit' not in markers:
            item.fixturenames.append('clean_database')


# =============================================================================
# Database Configuration
# =============================================================================
def _get_db_config() -> dict[str, str]:
    env_file = '.env' if Path('.env').exists() else '.env.example'
    load_dotenv(env_file)

    return {
        'user': os.getenv('POSTGRES_USER', 'carpool'),
        'password': os.getenv('POSTGRES_PASSWORD', 'carpool'),
        'host': os.getenv('POSTGRES_SERVER', 'localhost'),
        'port': os.getenv('POSTGRES_PORT', '5432'),
        'test_db': os.getenv('POSTGRES_DB', 'carpool_test_db'),
    }


def _get_test_database_url() -> str:
    cfg = _get_db_config()
    return (
        f'postgresql+asyncpg://{cfg["user"]}:{cfg["password"]}'
        f'@{cfg["host"]}:{cfg["port"]}/{cfg["test_db"]}'
    )


async def _setup_test_database() -> None:
    db_url = _get_test_database_url()
    cfg = _get_db_config()

    # Create database if not exists
    postgres_url = db_url.replace(f'/{cfg["test_db"]}', '/postgres')
    engine = create_async_engine(postgres_url, isolation_level='AUTOCOMMIT')
    try:
        async with engine.begin() as conn:
            result = await conn.execute(
                text(f"SELECT 1 FROM pg_database WHERE datname = '{cfg['test_db']}'")
            )
            if not result.fetchone():
                await conn.execute(text(f'CREATE DATABASE {cfg["test_db"]}'))
    finally:
        await engine.dispose()

    from src.platform.database.orm_db_setting import create_db_and_tables, drop_db_and_tables

    schema_engine = create_async_engine(db_url)
    try:
        await drop_db_and_tables(schema_engine)
        await create_db_and_tables(schema_engine)
    finally:
        await schema_engine.dispose()


async def _clean_all_tables() -> None:
    from src.platform.database.orm_db_setting import Base

    import src.service.carpool.driven_adapter.model  # noqa: F401

    tables = ', '.join(f'"{table.name}"' for table in Base.metadata.sorted_tables)
    engine = create_async_engine(_get_test_database_url())
    try:
        async with engine.begin() as conn:
            await conn.execute(text(f'TRUNCATE {tables} CASCADE'))
    finally:
        await engine.dispose()


# =============================================================================
# Integration Test Fixtures
# =============================================================================
@pytest.fixture(scope='function')
async def clean_database() -> AsyncGenerator[None, None]:
    if _database_unavailable_reason is not None:
        pytest.skip(_database_unavailable_reason)

    await _clean_all_tables()
    yield

    # Engines are bound to the loop of the test that created them
    from src.platform.database.orm_db_setting import dispose_engine

    await dispose_engine()
