"""Schema fixtures for DuckDB integration tests."""

import pytest_asyncio

from dalkit.infrastructure.data_access.database import Database

SCHEMA = [
    "CREATE SEQUENCE users_id_seq START 1",
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY DEFAULT nextval('users_id_seq'),
        name VARCHAR NOT NULL,
        email VARCHAR UNIQUE,
        age INTEGER CHECK (age >= 0),
        created_at TIMESTAMP,
        updated_at TIMESTAMP
    )
    """,
    "CREATE SEQUENCE orders_id_seq START 1",
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY DEFAULT nextval('orders_id_seq'),
        user_id INTEGER REFERENCES users(id),
        status VARCHAR DEFAULT 'pending',
        amount INTEGER CHECK (amount > 0)
    )
    """,
]


@pytest_asyncio.fixture
async def db(duckdb_database: Database) -> Database:
    """Facade over an in-memory database with the users/orders schema."""
    executor = duckdb_database.connection.executor()
    for statement in SCHEMA:
        await executor.execute_command(statement)
    return duckdb_database
