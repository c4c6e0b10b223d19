# chatbot/query_planner.py

import re
from dataclasses import dataclass
from datetime import date, timedelta

from intent_classifier import Intent, QuerySignals, classify_intent, get_catalog, routing_text

MONTHS = {
    "janeiro": 1,
    "fevereiro": 2,
    "marco": 3,
    "abril": 4,
    "maio": 5,
    "junho": 6,
    "julho": 7,
    "agosto": 8,
    "setembro": 9,
    "outubro": 10,
    "novembro": 11,
    "dezembro": 12,
}

MONTH_NAMES = {number: name for name, number in MONTHS.items()}
MONTH_NAMES[3] = "março"

_MONTH_NAME = re.compile(
    r"\b(" + "|".join(MONTHS) + r")\b(?:(?:\s*/\s*|\s+(?:de\s+)?)(\d{4})\b)?"
)
_MONTH_NUMERIC = re.compile(r"(?<![\d/])(\d{1,2})/(\d{4})(?![\d/])")
_LAST_MONTH = re.compile(r"\b(?:mes passado|ultimo mes|mes anterior)\b")
_THIS_MONTH = re.compile(r"\b(?:este mes|esse mes|mes atual|neste mes|nesse mes)\b")

_DAY_DATE = re.compile(r"(?<![\d/])(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?(?![\d/])")
_DAY_OF_MONTH = re.compile(r"\bdia\s+(\d{1,2})\b(?![\d/])")
_TODAY = re.compile(r"\bhoje\b")
_YESTERDAY = re.compile(r"\bontem\b")
_DAY_BEFORE_YESTERDAY = re.compile(r"\banteontem\b")

_PREPOSITION = re.compile(r"\b(?:no|na|nos|nas|do|da|dos|das|de|em|para|pra)\s+")
_PREPOSITIONS = {"no", "na", "nos", "nas", "do", "da", "dos", "das", "de", "em", "para", "pra"}


@dataclass(frozen=True)
class QueryPlan:
    """
    Deterministic plan for one query: the operation plus its arguments.
    """

    intent: Intent
    month: int
    year: int
    date_iso: str
    company: str = ""
    explicit_month: bool = False
    explicit_day: bool = False
    text: str = ""

    @property
    def period_label(self) -> str:
        return f"{MONTH_NAMES[self.month]}/{self.year}"

    @property
    def day_label(self) -> str:
        day = date.fromisoformat(self.date_iso)
        return day.strftime("%d/%m/%Y")


# -----------------------------
# Time references
# -----------------------------

def _previous_month(today: date) -> tuple:
    last_day = today.replace(day=1) - timedelta(days=1)
    return last_day.month, last_day.year


def extract_month(text: str, today: date) -> tuple:
    """
    Returns (month, year, explicit). Defaults to the current month.
    """
    if _LAST_MONTH.search(text):
        month, year = _previous_month(today)
        return month, year, True

    match = _MONTH_NAME.search(text)
    if match:
        month = MONTHS[match.group(1)]
        if match.group(2):
            year = int(match.group(2))
        else:
            # A month that hasn't started yet means last year's
            year = today.year if month <= today.month else today.year - 1
        return month, year, True

    match = _MONTH_NUMERIC.search(text)
    if match and 1 <= int(match.group(1)) <= 12:
        return int(match.group(1)), int(match.group(2)), True

    if _THIS_MONTH.search(text):
        return today.month, today.year, True

    return today.month, today.year, False


def _past_date(year: int, month: int, day: int, today: date) -> date:
    """
    Date for a day written without a year: one that hasn't happened yet
    means last year's. Raises ValueError for impossible dates.
    """
    candidate = date(year, month, day)
    if candidate <= today:
        return candidate
    try:
        return candidate.replace(year=year - 1)
    except ValueError:
        return candidate


def extract_day(text: str, today: date, month: int | None = None, year: int | None = None) -> tuple:
    """
    Returns (day, explicit). Defaults to today.
    "dia N" falls in the given month/year when one was named, else the current month.
    """
    match = _DAY_DATE.search(text)
    if match:
        day_num, month_num, year_text = match.groups()
        try:
            if year_text is None:
                return _past_date(today.year, int(month_num), int(day_num), today), True
            if len(year_text) == 2:
                return date(2000 + int(year_text), int(month_num), int(day_num)), True
            return date(int(year_text), int(month_num), int(day_num)), True
        except ValueError:
            pass

    if _DAY_BEFORE_YESTERDAY.search(text):
        return today - timedelta(days=2), True

    if _YESTERDAY.search(text):
        return today - timedelta(days=1), True

    if _TODAY.search(text):
        return today, True

    match = _DAY_OF_MONTH.search(text)
    if match:
        try:
            if month is not None and year is not None:
                return date(year, month, int(match.group(1))), True
            return today.replace(day=int(match.group(1))), True
        except ValueError:
            pass

    return today, False


# -----------------------------
# Company fragment
# -----------------------------

def _without_time_references(text: str) -> str:
    for pattern in (_DAY_DATE, _MONTH_NUMERIC, _MONTH_NAME, _LAST_MONTH, _THIS_MONTH):
        text = pattern.sub(" ", text)
    text = re.sub(r"\b\d+\b", " ", text)
    return " ".join(text.replace("%", " ").replace("/", " ").split())


def _trim_fragment(fragment: str, catalog) -> str:
    words = fragment.split()

    def is_filler(word):
        return word in _PREPOSITIONS or catalog.is_stop_word(word)

    while words and is_filler(words[0]):
        words.pop(0)
    while words and is_filler(words[-1]):
        words.pop()

    return " ".join(words)


def extract_company(text: str, catalog=None) -> str:
    """
    Best-effort company fragment: what follows the last preposition that
    isn't only filler. Empty when nothing usable is found.
    """
    catalog = catalog or get_catalog()
    cleaned = _without_time_references(text)

    for match in reversed(list(_PREPOSITION.finditer(cleaned))):
        candidate = _trim_fragment(cleaned[match.end():], catalog)
        if candidate:
            # "villa gourmet para" -> cut at the next preposition
            words = []
            for word in candidate.split():
                if word in _PREPOSITIONS:
                    break
                words.append(word)
            return _trim_fragment(" ".join(words), catalog)

    return ""


# -----------------------------
# Planning
# -----------------------------

def plan_query(user_input: str, today: date, catalog=None) -> QueryPlan:
    """
    Converts free text into a deterministic query plan.
    Never fails: unknown text becomes a FREEFORM plan.
    """
    catalog = catalog or get_catalog()
    text = routing_text(user_input)

    month, year, explicit_month = extract_month(text, today)
    if explicit_month:
        day, explicit_day = extract_day(text, today, month, year)
    else:
        day, explicit_day = extract_day(text, today)

    # "quem bateu a meta até 15/08" -> the day's month
    if explicit_day and not explicit_month:
        month, year = day.month, day.year

    intent = classify_intent(
        QuerySignals(text=text, explicit_day=explicit_day, explicit_month=explicit_month),
        catalog,
    )

    company = extract_company(text, catalog) if intent.is_analytic else ""

    return QueryPlan(
        intent=intent,
        month=month,
        year=year,
        date_iso=day.isoformat(),
        company=company,
        explicit_month=explicit_month,
        explicit_day=explicit_day,
        text=text,
    )
