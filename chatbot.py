# chatbot/chatbot.py

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo

import redis

from config import configure_logging, get_settings
from data_store import FeedStore
from errors import AssistantError, CollaboratorFailure, RateLimited
from followups import suggest_followups
from intent_classifier import Intent
from llm.ollama_client import OllamaClient
from memory import MemoryStore
from query_planner import plan_query
from rate_limiter import RateLimiter
from response_builder import build_response
from utils.context_builder import build_freeform_context
from utils.prompt import FREEFORM_INSTRUCTION

logger = logging.getLogger(__name__)

CLEAR_COMMAND = re.compile(r"^/(clear|limpar)\b", re.IGNORECASE)
PING_COMMAND = re.compile(r"^ping$", re.IGNORECASE)

EXAMPLES = (
    "% do dia 02/08 no Mercatto",
    "Quanto vendi ontem no Mercatto?",
    "Ranking de ontem",
    "Quem bateu a meta em agosto?",
    "Qual a projeção de fechamento do mês?",
    "Quanto falta para a meta?",
    "Resumo do mês de agosto 2025",
)

EMPTY_QUERY_TEXT = "Me envie sua pergunta. Ex.: \"quanto vendi ontem no Mercatto?\""

HELP_TEXT = (
    "🤖 Posso responder sobre as metas das empresas do grupo. Exemplos:\n"
    + "\n".join(f"• {example}" for example in EXAMPLES)
    + "\nUse /limpar para apagar o histórico da conversa."
)


def error_payload(error: AssistantError) -> dict:
    return {"ok": False, "errorCode": error.code, "userMessage": error.user_message}


class Chatbot:
    """
    Request boundary: one query in, one structured payload out.
    Never raises; every failure becomes `{ok: False, errorCode, userMessage}`.
    """

    def __init__(self, feed, memory, rate_limiter, renderer=None,
                 timezone: str = "America/Bahia", today_fn=None):
        self.feed = feed
        self.memory = memory
        self.rate_limiter = rate_limiter
        self.renderer = renderer
        self.timezone = ZoneInfo(timezone)
        self.today_fn = today_fn

    def today(self):
        if self.today_fn is not None:
            return self.today_fn()
        return datetime.now(self.timezone).date()

    def answer(self, user_id: str, query_text: str) -> dict:
        try:
            return self._answer(user_id, (query_text or "").strip())
        except AssistantError as e:
            logger.warning("Query from %s failed: %s (%s)", user_id, e.code, e)
            return error_payload(e)
        except Exception:
            logger.exception("Unexpected failure answering %s", user_id)
            return error_payload(AssistantError())

    # --------------------------------------------------
    # Pipeline
    # --------------------------------------------------

    def _answer(self, user_id, text):
        if not text:
            return {"ok": True, "text": EMPTY_QUERY_TEXT}

        decision = self.rate_limiter.admit(user_id)
        if not decision.allowed:
            raise RateLimited(decision.retry_after_seconds)

        # Maintenance commands
        if CLEAR_COMMAND.match(text):
            self.memory.clear(user_id)
            return {"ok": True, "text": "Memória limpa ✅"}

        if PING_COMMAND.match(text):
            return {"ok": True, "text": "pong"}

        today = self.today()
        plan = plan_query(text, today)
        logger.info(
            "Query from %s routed to %s (month=%s, day=%s, company=%r)",
            user_id, plan.intent.value, plan.period_label, plan.date_iso, plan.company,
        )

        session = self.memory.load(user_id)

        if plan.intent == Intent.HELP:
            payload = {"ok": True, "text": HELP_TEXT}

        elif plan.intent.is_analytic:
            records = self.feed.fetch_records()
            answer = build_response(plan, records, today, self.renderer, session)

            payload = {"ok": True, "text": answer.text}
            if answer.data is not None:
                payload["data"] = answer.data
            if not answer.clarification:
                payload["followups"] = suggest_followups(plan)

        else:
            payload = {"ok": True, "text": self._freeform(text, session)}

        self.memory.append(user_id, text, payload["text"])
        self.memory.maybe_summarize(user_id)
        return payload

    def _freeform(self, text, session):
        if self.renderer is None:
            raise CollaboratorFailure("no renderer configured")

        context = build_freeform_context(text, EXAMPLES, session)
        return self.renderer.render(FREEFORM_INSTRUCTION, context)


# --------------------------------------------------
# Construction (process entry points own these)
# --------------------------------------------------

def connect_redis(settings):
    if not settings.redis_url:
        logger.info("REDIS_URL not set: memory and rate limiting disabled")
        return None

    try:
        client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
        client.ping()
    except redis.RedisError:
        logger.warning("Redis unreachable: memory and rate limiting disabled", exc_info=True)
        return None

    return client


def build_chatbot(settings=None) -> Chatbot:
    settings = settings or get_settings()

    renderer = OllamaClient(
        url=settings.ollama_url,
        model=settings.ollama_model,
        timeout=settings.llm_timeout_seconds,
        temperature=settings.llm_temperature,
    )
    client = connect_redis(settings)

    return Chatbot(
        feed=FeedStore(
            settings.metas_url,
            timeout_seconds=settings.feed_timeout_seconds,
            cache_ttl_seconds=settings.feed_cache_ttl_seconds,
        ),
        memory=MemoryStore(
            client,
            renderer=renderer,
            max_turns=settings.memory_max_turns,
            ttl_seconds=settings.memory_ttl_seconds,
        ),
        rate_limiter=RateLimiter(
            client,
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max_requests,
        ),
        renderer=renderer,
        timezone=settings.timezone,
    )


def run_chatbot():
    """
    CLI entry point for chatting with the metas feed.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    print("=" * 60)
    print("📊 Metas Chatbot")
    print("Pergunte sobre as metas do grupo. Digite 'sair' para encerrar.")
    print("=" * 60)

    bot = build_chatbot(settings)

    while True:
        try:
            user_input = input("\nVocê: ").strip()

            if not user_input:
                continue

            if user_input.lower() in {"sair", "exit", "quit"}:
                print("\n👋 Até logo!")
                break

            out = bot.answer("cli", user_input)
            print(f"\nBot: {out.get('text') or out.get('userMessage')}")

            if out.get("followups"):
                print("\nSugestões:")
                for f in out["followups"]:
                    print(f"• {f}")

        except (KeyboardInterrupt, EOFError):
            print("\n\n👋 Encerrando.")
            break


if __name__ == "__main__":
    run_chatbot()
