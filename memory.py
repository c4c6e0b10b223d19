import json
import logging
import time
import uuid
from dataclasses import dataclass, field

import redis

from errors import CollaboratorFailure

logger = logging.getLogger(__name__)

SUMMARY_INSTRUCTION = (
    "Resuma de forma objetiva o histórico de conversa a seguir em até 5 frases. "
    "Destaque os fatos recorrentes: empresas citadas, períodos, totais e percentuais "
    "mencionados e preferências do usuário. Não invente números."
)


@dataclass(frozen=True)
class Turn:
    user_text: str
    assistant_text: str
    timestamp: float


@dataclass(frozen=True)
class MemorySession:
    turns: tuple = field(default_factory=tuple)
    summary: str | None = None

    def recent(self, n: int = 3) -> list:
        return [
            {"usuario": t.user_text, "assistente": t.assistant_text}
            for t in self.turns[-n:]
        ]


class MemoryStore:
    """
    Bounded per-user conversation log with a lossy running summary.

    Each exchange is stored as two raw entries (user, assistant), so the
    list holds at most `max_turns * 2` entries. Without a redis client
    every operation is a no-op.
    """

    def __init__(self, client, renderer=None, max_turns: int = 12,
                 ttl_seconds: int = 60 * 60 * 24 * 30, clock=time.time):
        self.client = client
        self.renderer = renderer
        self.max_turns = max_turns
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @property
    def max_entries(self) -> int:
        return self.max_turns * 2

    @staticmethod
    def turns_key(user_id) -> str:
        return f"mem:turns:{user_id}"

    @staticmethod
    def summary_key(user_id) -> str:
        return f"mem:sum:{user_id}"

    # -----------------------------
    # Public API
    # -----------------------------

    def load(self, user_id) -> MemorySession:
        if not self.enabled or not user_id:
            return MemorySession()

        try:
            raw = self.client.lrange(self.turns_key(user_id), -self.max_entries, -1)
            summary = self.client.get(self.summary_key(user_id))
        except redis.RedisError:
            logger.warning("Memory unavailable, loading empty session", exc_info=True)
            return MemorySession()

        return MemorySession(turns=tuple(_pair_entries(raw)), summary=summary or None)

    def append(self, user_id, user_text: str, assistant_text: str):
        if not self.enabled or not user_id:
            return

        now = self.clock()
        key = self.turns_key(user_id)
        entries = [
            json.dumps({"r": "u", "t": now, "x": user_text or ""}, ensure_ascii=False),
            json.dumps({"r": "a", "t": now, "x": assistant_text or ""}, ensure_ascii=False),
        ]

        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.rpush(key, *entries)
            pipe.ltrim(key, -self.max_entries, -1)
            pipe.expire(key, self.ttl_seconds)
            pipe.execute()
        except redis.RedisError:
            logger.warning("Memory unavailable, turn not stored", exc_info=True)

    def self_test(self) -> dict:
        """
        Write a short-lived key, read it back and delete it.
        """
        if not self.enabled:
            return {"ok": False, "error": "memory store not configured"}

        key = f"mem:selftest:{uuid.uuid4().hex}"
        try:
            self.client.set(key, "ok", ex=60)
            value = self.client.get(key)
            self.client.delete(key)
        except redis.RedisError as exc:
            logger.warning("Memory self-test failed: %s", exc)
            return {"ok": False, "error": str(exc)}

        if isinstance(value, bytes):
            value = value.decode()
        return {"ok": value == "ok", "key": key, "value": value}

    def clear(self, user_id):
        if not self.enabled or not user_id:
            return

        try:
            self.client.delete(self.turns_key(user_id), self.summary_key(user_id))
        except redis.RedisError:
            logger.warning("Memory unavailable, nothing cleared", exc_info=True)

    def maybe_summarize(self, user_id) -> bool:
        """
        Compress the full log into the stored summary once it reaches the cap.
        Returns True when a new summary was written.
        """
        if not self.enabled or not user_id or self.renderer is None:
            return False

        try:
            raw = self.client.lrange(self.turns_key(user_id), 0, -1)
        except redis.RedisError:
            logger.warning("Memory unavailable, summary skipped", exc_info=True)
            return False

        if len(raw) < self.max_entries:
            return False

        history = [
            {"usuario": t.user_text, "assistente": t.assistant_text}
            for t in _pair_entries(raw)
        ]

        try:
            summary = self.renderer.render(SUMMARY_INSTRUCTION, {"historico": history}).strip()
        except CollaboratorFailure:
            logger.warning("Summary generation failed for %s", user_id, exc_info=True)
            return False

        if not summary:
            return False

        try:
            self.client.set(self.summary_key(user_id), summary, ex=self.ttl_seconds)
        except redis.RedisError:
            logger.warning("Memory unavailable, summary not stored", exc_info=True)
            return False

        logger.info("Conversation summary refreshed for %s", user_id)
        return True


def _pair_entries(raw) -> list:
    turns = []
    pending = None

    for item in raw:
        try:
            entry = json.loads(item)
        except (TypeError, ValueError):
            continue

        if entry.get("r") == "u":
            pending = entry
        elif entry.get("r") == "a" and pending is not None:
            turns.append(
                Turn(
                    user_text=pending.get("x", ""),
                    assistant_text=entry.get("x", ""),
                    timestamp=float(pending.get("t", 0)),
                )
            )
            pending = None

    return turns
