# chatbot/intent_classifier.py

import re
from dataclasses import dataclass
from enum import Enum

from data_store import strip_accents
from keyword_catalog import KeywordCatalog


class Intent(str, Enum):
    DAY_RATIO = "DAY_RATIO"                 # one company's % of target on one day
    DAY_RANKING = "DAY_RANKING"             # all companies ranked for one day
    WHO_MET_TARGET = "WHO_MET_TARGET"       # companies that met the month's target
    MONTH_PROJECTION = "MONTH_PROJECTION"   # month-end linear projection
    SHORTFALL = "SHORTFALL"                 # how much is still missing
    MONTH_SUMMARY = "MONTH_SUMMARY"
    HELP = "HELP"
    FREEFORM = "FREEFORM"

    @property
    def is_analytic(self) -> bool:
        return self not in {Intent.HELP, Intent.FREEFORM}


@dataclass(frozen=True)
class QuerySignals:
    """
    What the routing rules look at: normalized text plus whether the
    query referred to a specific day or month.
    """

    text: str
    explicit_day: bool = False
    explicit_month: bool = False


_NOISE = re.compile(r"[^\w\s/%]")

_catalog = None


def get_catalog() -> KeywordCatalog:
    global _catalog
    if _catalog is None:
        _catalog = KeywordCatalog()
    return _catalog


def routing_text(user_query: str) -> str:
    """
    Lowercase, accent-free, punctuation-free form used by every matcher.
    """
    text = strip_accents(user_query.lower())
    text = _NOISE.sub(" ", text)
    return " ".join(text.split())


# -----------------------------
# Rules (evaluated in order)
# -----------------------------

def _is_help(signals, catalog):
    return catalog.has_keyword("HELP", signals.text) and len(signals.text.split()) <= 4


def _has(intent_name):
    def predicate(signals, catalog):
        return catalog.has_keyword(intent_name, signals.text)
    return predicate


def _is_day_ratio(signals, catalog):
    if not catalog.has_keyword("DAY_RATIO", signals.text):
        return False
    if signals.explicit_day:
        return True
    # "% de agosto" / "vendas do mês" are month questions
    return not (signals.explicit_month or catalog.has_keyword("MONTH_SUMMARY", signals.text))


def _is_month_summary(signals, catalog):
    return (
        catalog.has_keyword("MONTH_SUMMARY", signals.text)
        or catalog.has_keyword("DAY_RATIO", signals.text)
        or signals.explicit_month
    )


# Metric-keyword rules come before the generic month summary.
RULES = [
    (Intent.HELP, _is_help),
    (Intent.WHO_MET_TARGET, _has("WHO_MET_TARGET")),
    (Intent.SHORTFALL, _has("SHORTFALL")),
    (Intent.MONTH_PROJECTION, _has("MONTH_PROJECTION")),
    (Intent.DAY_RANKING, _has("DAY_RANKING")),
    (Intent.DAY_RATIO, _is_day_ratio),
    (Intent.MONTH_SUMMARY, _is_month_summary),
]


def classify_intent(signals: QuerySignals, catalog: KeywordCatalog | None = None) -> Intent:
    """
    Classifies a normalized query into a predefined intent.
    Anything no rule claims is FREEFORM.
    """
    catalog = catalog or get_catalog()

    if not signals.text:
        return Intent.FREEFORM

    for intent, predicate in RULES:
        if predicate(signals, catalog):
            return intent

    return Intent.FREEFORM
