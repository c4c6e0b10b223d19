# chatbot/response_builder.py

import logging
from dataclasses import dataclass

from aggregations import (
    day_ranking,
    day_ratio,
    month_projection,
    month_summary,
    shortfall_ranking,
    who_met_target,
)
from data_store import normalize_company_key
from errors import NoMatchingData
from intent_classifier import Intent
from utils.context_builder import build_context
from utils.explainer import generate_explanation
from utils.fallback import fallback_explanation
from utils.prompt import build_instruction

logger = logging.getLogger(__name__)

MAX_LISTED_COMPANIES = 10


@dataclass(frozen=True)
class Answer:
    text: str
    data: dict | None = None
    clarification: bool = False


class _Clarify(Exception):
    """Raised inside handlers when the question can't be answered as asked."""


# -----------------------------
# Public entry point
# -----------------------------

def build_response(plan, records, today, renderer=None, session=None) -> Answer:
    """
    Build the answer for an analytic plan: aggregate, then phrase the numbers.
    """
    handler = HANDLERS.get(plan.intent)
    if handler is None:
        raise ValueError(f"No analytic handler for {plan.intent}")

    try:
        return handler(plan, records, today, renderer, session)
    except _Clarify as e:
        return Answer(text=str(e), clarification=True)
    except NoMatchingData:
        logger.info("No data for %s (%s / %s)", plan.intent.value, plan.period_label, plan.date_iso)
        return Answer(text=_no_data_text(plan))


# --------------------------------------------------
# Company resolution
# --------------------------------------------------

def _company_names(records) -> dict:
    names = {}
    for r in records:
        names[r.company_key] = r.company_name
    return names


def match_companies(fragment: str, records, query_text: str = "") -> list:
    """
    Company keys for a fragment: an exact key wins, otherwise every key
    containing it. Without a fragment, the longest company named verbatim
    in the query (if any).
    """
    names = _company_names(records)

    if fragment:
        needle = normalize_company_key(fragment)
        if needle in names:
            return [needle]
        return sorted(k for k in names if needle in k)

    padded = f" {normalize_company_key(query_text)} "
    mentioned = [k for k in names if f" {k} " in padded]
    if not mentioned:
        return []
    return [max(mentioned, key=len)]


def _listing(records) -> str:
    names = sorted(set(_company_names(records).values()))
    listed = ", ".join(names[:MAX_LISTED_COMPANIES])
    if len(names) > MAX_LISTED_COMPANIES:
        listed += ", ..."
    return listed


def _scope(plan, records, required=False) -> list:
    keys = match_companies(plan.company, records, plan.text)

    if plan.company and not keys:
        raise _Clarify(
            f"Não encontrei a empresa \"{plan.company}\" nos painéis. "
            f"Empresas disponíveis: {_listing(records)}."
        )

    if required and not keys:
        raise _Clarify(
            "De qual empresa? Ex.: \"% do dia 02/08 no Mercatto\". "
            f"Empresas disponíveis: {_listing(records)}."
        )

    if required and len(keys) > 1:
        names = _company_names(records)
        options = ", ".join(names[k] for k in keys[:MAX_LISTED_COMPANIES])
        raise _Clarify(f"Encontrei mais de uma empresa para \"{plan.company}\": {options}. Qual delas?")

    return keys


# --------------------------------------------------
# Intent handlers
# --------------------------------------------------

def _handle_day_ratio(plan, records, today, renderer, session):
    key = _scope(plan, records, required=True)[0]
    result = day_ratio(records, key, plan.date_iso)

    if result is None:
        name = _company_names(records)[key]
        return Answer(text=f"Não há lançamento de {name} em {plan.day_label}.")

    data = result.to_dict()
    return Answer(text=_render(plan, data, renderer, session), data=data)


def _handle_day_ranking(plan, records, today, renderer, session):
    data = day_ranking(records, plan.date_iso).to_dict()
    return Answer(text=_render(plan, data, renderer, session), data=data)


def _handle_month_summary(plan, records, today, renderer, session):
    keys = _scope(plan, records)
    data = month_summary(records, plan.month, plan.year, keys).to_dict()
    return Answer(text=_render(plan, data, renderer, session), data=data)


def _handle_who_met_target(plan, records, today, renderer, session):
    keys = _scope(plan, records)
    summary = month_summary(records, plan.month, plan.year, keys)
    met = who_met_target(summary)

    data = {
        "tipo": "quem_bateu",
        "mes": summary.month,
        "ano": summary.year,
        "empresas": [c.to_dict() for c in met],
        "total_empresas": len(summary.companies),
        "mais_perto": summary.companies[0].to_dict(),
    }
    return Answer(text=_render(plan, data, renderer, session), data=data)


def _handle_month_projection(plan, records, today, renderer, session):
    keys = _scope(plan, records)
    data = month_projection(records, plan.month, plan.year, today, keys).to_dict()
    return Answer(text=_render(plan, data, renderer, session), data=data)


def _handle_shortfall(plan, records, today, renderer, session):
    keys = _scope(plan, records)
    projection = month_projection(records, plan.month, plan.year, today, keys)
    behind = shortfall_ranking(projection)

    data = {
        "tipo": "falta_meta",
        "mes": projection.month,
        "ano": projection.year,
        "empresas": [c.to_dict() for c in behind],
        "total_falta": round(projection.totals.shortfall, 2),
    }
    return Answer(text=_render(plan, data, renderer, session), data=data)


HANDLERS = {
    Intent.DAY_RATIO: _handle_day_ratio,
    Intent.DAY_RANKING: _handle_day_ranking,
    Intent.MONTH_SUMMARY: _handle_month_summary,
    Intent.WHO_MET_TARGET: _handle_who_met_target,
    Intent.MONTH_PROJECTION: _handle_month_projection,
    Intent.SHORTFALL: _handle_shortfall,
}


# -----------------------------
# Shared helpers
# -----------------------------

def _render(plan, data, renderer, session):
    context = build_context(plan, data, session)
    explanation = generate_explanation(renderer, build_instruction(plan.intent.value), context)
    if explanation:
        return explanation
    return fallback_explanation(context)


def _no_data_text(plan):
    if plan.intent == Intent.DAY_RANKING:
        return f"Não encontrei lançamentos para {plan.day_label}."
    return f"Não encontrei lançamentos para {plan.period_label}."
