"""Tests for the in-memory and Redis decision stores."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
from fakeredis import FakeAsyncRedis

from stagegate.domain.conditions import EVALUATION_TIMEOUT, ConditionResult, ConditionType, TransitionCondition
from stagegate.domain.transitions import TransitionRequest, build_decision
from stagegate.services.decision_store import InMemoryDecisionStore, RedisDecisionStore

pytestmark = pytest.mark.unit

REQUEST = TransitionRequest("proj-1", "A", "B")


def _decision():
    conditions = [
        TransitionCondition(id="tasks", name="tasks", type=ConditionType.TASK_COMPLETION),
        TransitionCondition(id="qc", name="qc", type=ConditionType.DATA_QUALITY, required=False),
    ]
    results = [
        ConditionResult.passed_result("tasks"),
        ConditionResult.could_not_run("qc", EVALUATION_TIMEOUT, "timed out"),
    ]
    return build_decision(REQUEST, conditions, results, graph_version=4)


@pytest.fixture
def redis_client():
    return FakeAsyncRedis(decode_responses=True)


class TestInMemoryDecisionStore:
    async def test_save_get_latest(self):
        store = InMemoryDecisionStore()
        decision = _decision()
        await store.save(decision)

        assert await store.get(decision.decision_id) == decision
        assert await store.latest(REQUEST.key) == decision
        assert await store.get("missing") is None

    async def test_expired_decision_not_returned(self):
        store = InMemoryDecisionStore(ttl_seconds=60)
        old = replace(_decision(), evaluated_at=datetime.now(UTC) - timedelta(minutes=5))
        await store.save(old)

        assert await store.get(old.decision_id) is None
        assert await store.latest(REQUEST.key) is None

    async def test_purge_drops_latest_pointers(self):
        store = InMemoryDecisionStore(ttl_seconds=60)
        old = replace(_decision(), evaluated_at=datetime.now(UTC) - timedelta(minutes=5))
        await store.save(old)

        other = build_decision(TransitionRequest("proj-2", "A", "B"), [], [], graph_version=1)
        await store.save(other)

        assert REQUEST.key not in store._latest
        assert old.decision_id not in store._by_id
        assert await store.latest(other.request.key) == other


class TestRedisDecisionStore:
    async def test_round_trip_preserves_verdict(self, redis_client):
        store = RedisDecisionStore(redis_client, ttl_seconds=300)
        decision = _decision()
        await store.save(decision)

        loaded = await store.get(decision.decision_id)
        assert loaded == decision
        assert loaded.indeterminate == ["qc"]
        assert (await store.latest(REQUEST.key)).decision_id == decision.decision_id

    async def test_keys_expire(self, redis_client):
        store = RedisDecisionStore(redis_client, ttl_seconds=120)
        decision = _decision()
        await store.save(decision)

        ttl = await redis_client.ttl(f"stagegate:decision:{decision.decision_id}")
        assert 0 < ttl <= 120

    async def test_unknown_decision(self, redis_client):
        store = RedisDecisionStore(redis_client)
        assert await store.get("nope") is None
        assert await store.latest("proj-1:X:Y") is None
