"""Integration tests for transactions and constraint classification on DuckDB."""

from dataclasses import dataclass

import pytest

from dalkit.domain.records import RecordList
from dalkit.infrastructure.data_access.database import Database
from dalkit.infrastructure.data_access.exceptions import (
    ConstraintViolationError,
    DatabaseError,
    DuplicateRecordError,
    InvalidReferenceError,
    TransactionAbortedError,
)


@dataclass
class User:
    id: int | None = None
    name: str | None = None
    email: str | None = None
    age: int | None = None


@dataclass
class Order:
    id: int | None = None
    user_id: int | None = None
    status: str | None = None
    amount: int | None = None


class TestConstraintClassification:

    @pytest.mark.asyncio
    async def test_duplicate_primary_key(self, db, ctx):
        await db.create(ctx, User(id=7, name="ann"))

        with pytest.raises(DuplicateRecordError) as exc_info:
            await db.create(ctx, User(id=7, name="bob"))

        assert str(exc_info.value) == "a record with the same values already exists"

    @pytest.mark.asyncio
    async def test_duplicate_unique_column(self, db, ctx):
        await db.create(ctx, User(name="ann", email="same@example.com"))

        with pytest.raises(DuplicateRecordError):
            await db.create(ctx, User(name="bob", email="same@example.com"))

    @pytest.mark.asyncio
    async def test_missing_foreign_key(self, db, ctx):
        with pytest.raises(InvalidReferenceError):
            await db.create(ctx, Order(user_id=999, amount=1))

    @pytest.mark.asyncio
    async def test_referenced_row_cannot_be_deleted(self, db, ctx):
        user = User(name="ann")
        await db.create(ctx, user)
        await db.create(ctx, Order(user_id=user.id, amount=1))

        with pytest.raises(InvalidReferenceError):
            await db.execute_raw_query(ctx, None, "DELETE FROM users WHERE id = ?", user.id)

    @pytest.mark.asyncio
    async def test_check_constraint(self, db, ctx):
        with pytest.raises(ConstraintViolationError):
            await db.create(ctx, User(name="ann", age=-1))

    @pytest.mark.asyncio
    async def test_not_null_is_a_generic_database_error(self, db, ctx):
        with pytest.raises(DatabaseError) as exc_info:
            await db.create(ctx, User(email="nameless@example.com"))

        assert type(exc_info.value) is DatabaseError
        assert "users.name" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unknown_table(self, db, ctx):
        with pytest.raises(DatabaseError) as exc_info:
            await db.count(ctx, "invoices")
        assert type(exc_info.value) is DatabaseError


class TestTransactions:

    @pytest.mark.asyncio
    async def test_commit_is_visible(self, db, ctx):
        async def register(tx: Database) -> int:
            user = User(name="ann")
            await tx.create(ctx, user)
            await tx.create(ctx, Order(user_id=user.id, amount=5))
            return user.id

        user_id = await db.with_transaction(ctx, register)

        assert await db.count(ctx, Order, {"user_id": user_id}) == 1

    @pytest.mark.asyncio
    async def test_uncommitted_writes_are_isolated(self, db, ctx):
        seen_outside = []

        async def register(tx: Database) -> None:
            await tx.create(ctx, User(name="ann"))
            seen_outside.append(await db.count(ctx, User))
            assert await tx.count(ctx, User) == 1

        await db.with_transaction(ctx, register)

        assert seen_outside == [0]
        assert await db.count(ctx, User) == 1

    @pytest.mark.asyncio
    async def test_error_rolls_back_everything(self, db, ctx):
        async def register(tx: Database) -> None:
            await tx.create(ctx, User(name="ann"))
            raise RuntimeError("payment declined")

        with pytest.raises(RuntimeError, match="payment declined"):
            await db.with_transaction(ctx, register)

        assert await db.count(ctx, User) == 0

    @pytest.mark.asyncio
    async def test_constraint_failure_rolls_back(self, db, ctx):
        async def register(tx: Database) -> None:
            await tx.create(ctx, User(name="ann", email="a@example.com"))
            await tx.create(ctx, User(name="bob", email="a@example.com"))

        with pytest.raises(DuplicateRecordError):
            await db.with_transaction(ctx, register)

        assert await db.count(ctx, User) == 0

    @pytest.mark.asyncio
    async def test_batch_create_is_atomic(self, db, ctx):
        users = [User(name="ann", email="x@example.com"), User(name="bob", email="x@example.com")]

        with pytest.raises(DuplicateRecordError):
            await db.create(ctx, users)

        assert await db.count(ctx, User) == 0
        assert [user.id for user in users] == [None, None]

    @pytest.mark.asyncio
    async def test_swallowed_nested_failure_aborts(self, db, ctx):
        async def failing(tx: Database) -> None:
            await tx.create(ctx, Order(user_id=42, amount=1))

        async def outer(tx: Database) -> None:
            await tx.create(ctx, User(name="ann"))
            try:
                await tx.with_transaction(ctx, failing)
            except InvalidReferenceError:
                pass

        with pytest.raises(TransactionAbortedError):
            await db.with_transaction(ctx, outer)

        assert await db.count(ctx, User) == 0

    @pytest.mark.asyncio
    async def test_reads_inside_transaction(self, db, ctx):
        await db.create(ctx, [User(name="ann"), User(name="bob")])

        async def rename(tx: Database) -> list[str]:
            await tx.update(ctx, "users", {"name": "bea"}, {"name": "bob"})
            users = RecordList(User)
            await tx.find_many(ctx, users, None)
            return sorted(user.name for user in users)

        assert await db.with_transaction(ctx, rename) == ["ann", "bea"]
