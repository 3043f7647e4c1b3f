"""Unit tests for CacheRepository against the in-memory Redis double."""
import asyncio
from datetime import timedelta
from typing import Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.servicekit.exceptions import (
    CacheCancelledError,
    CacheCommandError,
    CacheConnectionError,
    CacheDecodingError,
    CacheTimeoutError,
    CacheTypeMismatchError,
    CacheValidationError,
)
from src.servicekit.interfaces import ICacheRepository
from src.servicekit.utils.cache import CacheLookup, CacheRepository, OperationContext
from src.servicekit.utils.cache.keys import TTL
from tests.factories import UserSession, create_user_session


class SessionCache(CacheRepository[UserSession]):
    """Concrete repository overriding only set() to apply a default TTL."""

    default_ttl = 3600

    def __init__(self, client, context):
        super().__init__(client, context, value_type=UserSession)

    async def set(self, key: str, value: UserSession, ttl: TTL = None) -> None:
        await super().set(key, value, ttl or self.default_ttl)


class NamespacedCache(CacheRepository[str]):
    """Overrides the key scan; hash reads must still go through the base."""

    async def get_keys_by_pattern(self, pattern: str):
        return await super().get_keys_by_pattern(f"app:{pattern}")


# ==================== Construction ====================

def test_requires_client(op_context):
    with pytest.raises(CacheValidationError):
        CacheRepository(None, op_context)


def test_requires_context(redis_client):
    with pytest.raises(CacheValidationError):
        CacheRepository(redis_client, None)


def test_satisfies_interface(str_repo):
    assert isinstance(str_repo, ICacheRepository)


def test_codec_resolved_once(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=UserSession)
    assert not repo.codec.is_primitive
    assert CacheRepository(redis_client, op_context, value_type=int).codec.is_primitive


# ==================== Key/value ====================

@pytest.mark.asyncio
async def test_get_miss_is_distinguishable(str_repo):
    lookup = await str_repo.get("missing")

    assert lookup == CacheLookup.miss()
    assert not lookup.found
    assert not lookup
    assert lookup.value_or("fallback") == "fallback"


@pytest.mark.asyncio
async def test_stored_empty_string_is_a_hit(str_repo):
    await str_repo.set("empty", "")

    lookup = await str_repo.get("empty")

    assert lookup.found
    assert lookup.value == ""


@pytest.mark.asyncio
async def test_stored_zero_is_a_hit(int_repo):
    await int_repo.set("zero", 0)

    lookup = await int_repo.get("zero")

    assert lookup
    assert lookup.value == 0


@pytest.mark.asyncio
async def test_primitive_stored_as_plain_text(int_repo, redis_client):
    await int_repo.set("counter", 42)

    assert redis_client.raw("counter") == b"42"
    assert (await int_repo.get("counter")).value == 42


@pytest.mark.asyncio
async def test_bool_stored_as_true_false(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=bool)
    await repo.set("flag", False)

    assert redis_client.raw("flag") == b"false"
    lookup = await repo.get("flag")
    assert lookup.found and lookup.value is False


@pytest.mark.asyncio
async def test_structured_value_round_trip(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=UserSession)
    session = create_user_session()

    await repo.set("session:42", session)

    assert redis_client.raw("session:42").startswith(b"{")
    assert (await repo.get("session:42")).value == session


@pytest.mark.asyncio
async def test_set_with_ttl(str_repo, redis_client):
    await str_repo.set("a", "1", ttl=60)
    await str_repo.set("b", "2", ttl=timedelta(milliseconds=1500))
    await str_repo.set("c", "3")

    assert 59000 < redis_client.ttl_ms("a") <= 60000
    assert 1000 < redis_client.ttl_ms("b") <= 1500
    assert redis_client.ttl_ms("c") is None


@pytest.mark.asyncio
async def test_set_ttl_zero_means_no_expiration(str_repo, redis_client):
    await str_repo.set("k", "v", ttl=0)

    assert redis_client.ttl_ms("k") is None


@pytest.mark.asyncio
async def test_expired_key_is_a_miss(str_repo):
    await str_repo.set("short", "v", ttl=0.01)
    await asyncio.sleep(0.03)

    assert not (await str_repo.get("short")).found


@pytest.mark.asyncio
async def test_negative_ttl_rejected_without_io(str_repo, redis_client):
    with pytest.raises(CacheValidationError):
        await str_repo.set("k", "v", ttl=-1)

    assert redis_client.round_trips == 0


@pytest.mark.asyncio
async def test_empty_key_rejected_without_io(str_repo, redis_client):
    for call in (
        lambda: str_repo.get(""),
        lambda: str_repo.set("", "v"),
        lambda: str_repo.delete(""),
        lambda: str_repo.exists(""),
    ):
        with pytest.raises(CacheValidationError):
            await call()

    assert redis_client.round_trips == 0


@pytest.mark.asyncio
async def test_set_wrong_type_rejected_without_io(int_repo, redis_client):
    with pytest.raises(CacheTypeMismatchError) as exc_info:
        await int_repo.set("k", "forty-two")

    assert exc_info.value.cache_key == "k"
    assert redis_client.round_trips == 0


@pytest.mark.asyncio
async def test_structured_wrong_type_rejected_without_io(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=UserSession)

    with pytest.raises(CacheTypeMismatchError):
        await repo.set("session:1", 5)
    with pytest.raises(CacheTypeMismatchError):
        await repo.hmset("sessions", {"1": create_user_session(), "2": "token"})

    assert redis_client.round_trips == 0
    assert redis_client.raw("session:1") is None


@pytest.mark.parametrize("ttl", [float("nan"), float("inf")])
@pytest.mark.asyncio
async def test_non_finite_ttl_rejected_without_io(str_repo, redis_client, ttl):
    with pytest.raises(CacheValidationError):
        await str_repo.set("k", "v", ttl=ttl)

    assert redis_client.round_trips == 0


@pytest.mark.asyncio
async def test_get_corrupt_payload_raises_decoding_error(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=UserSession)
    redis_client.put_raw("session:1", b"{broken")

    with pytest.raises(CacheDecodingError) as exc_info:
        await repo.get("session:1")

    assert exc_info.value.cache_key == "session:1"


@pytest.mark.asyncio
async def test_delete_and_exists(str_repo):
    await str_repo.set("k", "v")

    assert await str_repo.exists("k")
    assert await str_repo.delete("k") is True
    assert not await str_repo.exists("k")
    assert await str_repo.delete("k") is False


# ==================== Pattern scan ====================

@pytest.mark.asyncio
async def test_get_keys_by_pattern_walks_every_batch(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=int, scan_count=3)
    for i in range(10):
        await repo.set(f"user:{i}", i)
    await repo.set("other:1", 1)

    keys = await repo.get_keys_by_pattern("user:*")

    assert sorted(keys) == sorted(f"user:{i}" for i in range(10))
    assert redis_client.scan_calls > 1


@pytest.mark.asyncio
async def test_get_keys_by_pattern_deduplicates(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=int, scan_count=2)
    for i in range(5):
        await repo.set(f"k{i}", i)
    redis_client.scan_duplicates = True

    keys = await repo.get_keys_by_pattern("k*")

    assert keys == ["k0", "k1", "k2", "k3", "k4"]


@pytest.mark.asyncio
async def test_get_keys_by_pattern_no_match(str_repo):
    assert await str_repo.get_keys_by_pattern("nothing:*") == []


@pytest.mark.asyncio
async def test_get_keys_by_pattern_rejects_empty_pattern(str_repo):
    with pytest.raises(CacheValidationError):
        await str_repo.get_keys_by_pattern("")


# ==================== Hashes ====================

@pytest.mark.asyncio
async def test_hash_set_get(str_repo):
    await str_repo.hset("user:1", "name", "ada")

    lookup = await str_repo.hget("user:1", "name")
    assert lookup.found and lookup.value == "ada"
    assert not (await str_repo.hget("user:1", "email")).found
    assert not (await str_repo.hget("user:2", "name")).found


@pytest.mark.asyncio
async def test_hget_all(int_repo):
    await int_repo.hmset("scores", {"ada": 3, "bob": 0})

    assert await int_repo.hget_all("scores") == {"ada": 3, "bob": 0}
    assert await int_repo.hget_all("absent") == {}


@pytest.mark.asyncio
async def test_hget_fields_skips_missing(int_repo):
    await int_repo.hmset("scores", {"ada": 3, "bob": 5})

    result = await int_repo.hget_fields("scores", "ada", "zed")

    assert result == {"ada": 3}


@pytest.mark.asyncio
async def test_hget_fields_requires_fields(int_repo, redis_client):
    with pytest.raises(CacheValidationError):
        await int_repo.hget_fields("scores")
    assert redis_client.round_trips == 0


@pytest.mark.asyncio
async def test_hscan_collects_matching_fields(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=int, scan_count=2)
    await repo.hmset("h", {f"field:{i}": i for i in range(5)})
    await repo.hset("h", "other", 99)

    result = await repo.hscan("h", "field:*")

    assert result == {f"field:{i}": i for i in range(5)}
    assert await repo.hscan("h") == {**result, "other": 99}


@pytest.mark.asyncio
async def test_structured_hash_values(redis_client, op_context):
    repo = CacheRepository(redis_client, op_context, value_type=UserSession)
    session = create_user_session(user_id=7)

    await repo.hset("sessions", "7", session)

    assert (await repo.hget("sessions", "7")).value == session
    assert await repo.hget_all("sessions") == {"7": session}


@pytest.mark.asyncio
async def test_hdel_and_hexists(str_repo):
    await str_repo.hmset("h", {"a": "1", "b": "2"})

    assert await str_repo.hexists("h", "a")
    assert await str_repo.hdel("h", "a", "missing") == 1
    assert not await str_repo.hexists("h", "a")
    assert await str_repo.hexists("h", "b")


@pytest.mark.asyncio
async def test_hash_argument_validation(str_repo, redis_client):
    with pytest.raises(CacheValidationError):
        await str_repo.hset("h", "", "v")
    with pytest.raises(CacheValidationError):
        await str_repo.hget("", "f")
    with pytest.raises(CacheValidationError):
        await str_repo.hdel("h")
    with pytest.raises(CacheValidationError):
        await str_repo.hmset("h", {})

    assert redis_client.round_trips == 0


# ==================== Errors ====================

@pytest.mark.asyncio
async def test_wrong_kind_of_key_is_command_error(str_repo):
    await str_repo.set("plain", "v")

    with pytest.raises(CacheCommandError) as exc_info:
        await str_repo.hset("plain", "f", "v")

    assert exc_info.value.cache_key == "plain"
    assert exc_info.value.details["operation"] == "hset"


@pytest.mark.asyncio
async def test_transport_failure_is_connection_error(str_repo, redis_client):
    redis_client.fail_with = RedisConnectionError("connection refused")

    with pytest.raises(CacheConnectionError) as exc_info:
        await str_repo.get("k")

    assert isinstance(exc_info.value.original, RedisConnectionError)


@pytest.mark.asyncio
async def test_cancelled_context_stops_calls(redis_client):
    ctx = OperationContext()
    repo = CacheRepository(redis_client, ctx, value_type=str)
    ctx.cancel("shutdown")

    with pytest.raises(CacheCancelledError):
        await repo.get("k")

    assert redis_client.round_trips == 0


@pytest.mark.asyncio
async def test_deadline_abandons_slow_call(redis_client):
    repo = CacheRepository(redis_client, OperationContext(timeout=0.05), value_type=str)
    redis_client.latency = 5

    with pytest.raises(CacheTimeoutError):
        await repo.set("k", "v")


# ==================== Overrides ====================

@pytest.mark.asyncio
async def test_subclass_override_applies(redis_client, op_context):
    cache = SessionCache(redis_client, op_context)

    await cache.set("session:1", create_user_session())

    assert redis_client.ttl_ms("session:1") > 3_500_000
    assert (await cache.get("session:1")).value.user_id == 42


@pytest.mark.asyncio
async def test_override_leaves_other_operations_default(redis_client, op_context):
    cache = NamespacedCache(redis_client, op_context, value_type=str)
    await cache.set("app:one", "1")
    await cache.set("one", "2")
    await cache.hset("app:h", "f", "v")

    assert await cache.get_keys_by_pattern("*") == ["app:h", "app:one"]
    assert (await cache.hget("app:h", "f")).value == "v"


def test_cache_lookup_helpers():
    hit: CacheLookup[Optional[int]] = CacheLookup.hit(None)

    assert hit.found
    assert hit.value_or(5) is None
    assert CacheLookup.miss().value_or(5) == 5


@pytest.mark.asyncio
async def test_cancel_mid_flight_fails_pending_call(redis_client):
    ctx = OperationContext()
    repo = CacheRepository(redis_client, ctx, value_type=str)
    redis_client.latency = 10

    pending = asyncio.create_task(repo.get("k"))
    await asyncio.sleep(0.01)
    ctx.cancel("shutdown")

    with pytest.raises(CacheCancelledError):
        await asyncio.wait_for(pending, timeout=1)
