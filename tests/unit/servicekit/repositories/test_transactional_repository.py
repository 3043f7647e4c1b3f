"""Tests for TransactionalRepository commit/rollback behaviour."""
import pytest

from src.servicekit.exceptions import RepositoryConflictError
from src.servicekit.repositories import BaseRepository, TransactionalRepository
from tests.fixtures.models import Account


async def _count_accounts(db_connection) -> int:
    async with db_connection.session() as session:
        return await BaseRepository(Account, session).count()


@pytest.fixture
def tx_repo(db_connection) -> TransactionalRepository:
    return TransactionalRepository(db_connection.session_factory)


@pytest.fixture
def accounts(test_session) -> BaseRepository:
    return BaseRepository(Account, test_session)


@pytest.mark.asyncio
async def test_execute_in_transaction_commits(tx_repo, accounts, db_connection):
    async def open_accounts(session):
        await accounts.create(email="a@example.com", session=session)
        await accounts.create(email="b@example.com", session=session)
        return "done"

    assert await tx_repo.execute_in_transaction(open_accounts) == "done"
    assert await _count_accounts(db_connection) == 2


@pytest.mark.asyncio
async def test_execute_in_transaction_rolls_back_on_error(tx_repo, accounts, db_connection):
    async def fail_halfway(session):
        await accounts.create(email="a@example.com", session=session)
        raise ValueError("abort")

    with pytest.raises(ValueError, match="abort"):
        await tx_repo.execute_in_transaction(fail_halfway)

    assert await _count_accounts(db_connection) == 0


@pytest.mark.asyncio
async def test_conflict_rolls_back_whole_transaction(tx_repo, accounts, db_connection):
    async def duplicate(session):
        await accounts.create(email="a@example.com", session=session)
        await accounts.create(email="a@example.com", session=session)

    with pytest.raises(RepositoryConflictError):
        await tx_repo.execute_in_transaction(duplicate)

    assert await _count_accounts(db_connection) == 0


@pytest.mark.asyncio
async def test_transaction_context_manager(tx_repo, accounts, db_connection):
    async with tx_repo.transaction() as session:
        created = await accounts.create(email="a@example.com", session=session)
        await accounts.update(created.id, session=session, balance=75)

    async with db_connection.session() as session:
        stored = await BaseRepository(Account, session).first_by_key("email", "a@example.com")
    assert stored.balance == 75


@pytest.mark.asyncio
async def test_manual_begin_commit(tx_repo, accounts, db_connection):
    session = await tx_repo.begin()
    await accounts.create(email="a@example.com", session=session)
    await tx_repo.commit(session)

    assert await _count_accounts(db_connection) == 1


@pytest.mark.asyncio
async def test_manual_rollback(tx_repo, accounts, db_connection):
    session = await tx_repo.begin()
    await accounts.create(email="a@example.com", session=session)
    await tx_repo.rollback(session)

    assert await _count_accounts(db_connection) == 0


@pytest.mark.asyncio
async def test_delete_inside_transaction(tx_repo, accounts, db_connection):
    async with tx_repo.transaction() as session:
        created = await accounts.create(email="a@example.com", session=session)

    async with tx_repo.transaction() as session:
        assert await accounts.delete(created.id, session=session) is True

    assert await _count_accounts(db_connection) == 0
