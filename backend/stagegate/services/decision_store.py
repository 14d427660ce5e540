"""Gate decision store.

Every decision the gate produces is kept for a bounded time so a later commit
can reference it by id, and so callers asking for cached results can reuse
the latest decision for the same request.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol

import redis.asyncio as redis

from stagegate.domain.transitions import GateDecision
from stagegate.schemas.transitions import GateDecisionSchema


class DecisionStore(Protocol):
    async def save(self, decision: GateDecision) -> None:
        ...

    async def get(self, decision_id: str) -> GateDecision | None:
        ...

    async def latest(self, request_key: str) -> GateDecision | None:
        ...


class InMemoryDecisionStore:
    """Process-local store; entries expire after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: int = 300):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._by_id: dict[str, GateDecision] = {}
        self._latest: dict[str, str] = {}

    def _expired(self, decision: GateDecision) -> bool:
        return datetime.now(UTC) - decision.evaluated_at > self.ttl

    def _purge(self) -> None:
        for decision_id in [d_id for d_id, d in self._by_id.items() if self._expired(d)]:
            del self._by_id[decision_id]
        for request_key in [key for key, d_id in self._latest.items() if d_id not in self._by_id]:
            del self._latest[request_key]

    async def save(self, decision: GateDecision) -> None:
        self._purge()
        self._by_id[decision.decision_id] = decision
        self._latest[decision.request.key] = decision.decision_id

    async def get(self, decision_id: str) -> GateDecision | None:
        decision = self._by_id.get(decision_id)
        if decision is None or self._expired(decision):
            return None
        return decision

    async def latest(self, request_key: str) -> GateDecision | None:
        decision_id = self._latest.get(request_key)
        return await self.get(decision_id) if decision_id else None


class RedisDecisionStore:
    """Decisions serialized as JSON with a Redis expiry, shared across workers."""

    KEY_PREFIX = "stagegate:decision:"
    LATEST_PREFIX = "stagegate:decision:latest:"

    def __init__(self, client: redis.Redis, ttl_seconds: int = 300):
        self.redis = client
        self.ttl = ttl_seconds

    def _key(self, decision_id: str) -> str:
        return f"{self.KEY_PREFIX}{decision_id}"

    def _latest_key(self, request_key: str) -> str:
        return f"{self.LATEST_PREFIX}{request_key}"

    async def save(self, decision: GateDecision) -> None:
        payload = GateDecisionSchema.from_decision(decision).model_dump_json()
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(self._key(decision.decision_id), payload, ex=self.ttl)
            pipe.set(self._latest_key(decision.request.key), decision.decision_id, ex=self.ttl)
            await pipe.execute()

    async def get(self, decision_id: str) -> GateDecision | None:
        payload = await self.redis.get(self._key(decision_id))
        if not payload:
            return None
        return GateDecisionSchema.model_validate_json(payload).to_domain()

    async def latest(self, request_key: str) -> GateDecision | None:
        decision_id = await self.redis.get(self._latest_key(request_key))
        return await self.get(decision_id) if decision_id else None
