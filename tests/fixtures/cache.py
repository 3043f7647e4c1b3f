"""Cache fixtures for testing."""
import pytest

from src.servicekit.testing import InMemoryRedis
from src.servicekit.utils.cache import CacheRepository, OperationContext


@pytest.fixture
def redis_client() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def op_context() -> OperationContext:
    return OperationContext(name="test")


@pytest.fixture
def str_repo(redis_client, op_context) -> CacheRepository[str]:
    return CacheRepository(redis_client, op_context, value_type=str)


@pytest.fixture
def int_repo(redis_client, op_context) -> CacheRepository[int]:
    return CacheRepository(redis_client, op_context, value_type=int)
