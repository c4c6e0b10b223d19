# chatbot/data_store.py
import logging
import math
import re
import time
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime

import requests

from errors import UpstreamMalformed, UpstreamUnavailable

logger = logging.getLogger(__name__)

FEED_CACHE_NAME = "metas:feed"

# Anything older is a spreadsheet zero-date (0000-00-00, 1899-12-30, ...)
MIN_VALID_YEAR = 1900

_BR_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_BR_THOUSANDS = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


def _log_cache(event: str, name: str):
    logger.debug("[CACHE %s] name=%s", event, name)


@dataclass(frozen=True)
class MetricRecord:
    """
    One company's target/actual for one calendar day.

    `monthly_target` is the goal of the whole month, repeated on every
    row of the same company+month by the upstream spreadsheet.
    """

    date_iso: str
    year: int
    month: int
    day: int
    company_name: str
    company_key: str
    monthly_target: float
    daily_actual: float


# --------------------------------------------------
# Normalization helpers
# --------------------------------------------------

def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_company_key(name) -> str:
    """
    Join key for a company: uppercase, no diacritics, single spaces.
    """
    text = strip_accents(str(name or "").upper())
    return " ".join(text.split())


def _field_name(key) -> str:
    return strip_accents(str(key)).strip().lower()


def _pick(row: dict, field: str):
    for key, value in row.items():
        if _field_name(key) == field and value not in (None, ""):
            return value
    return None


def _parse_date(value) -> date | None:
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            return None

        match = _BR_DATE.match(text)
        try:
            if match:
                day, month, year = (int(g) for g in match.groups())
                parsed = date(year, month, day)
            else:
                # Also covers ISO datetimes such as 2025-08-02T03:00:00.000Z
                parsed = date.fromisoformat(text[:10])
        except ValueError:
            return None

    if parsed.year < MIN_VALID_YEAR:
        return None
    return parsed


def _coerce_amount(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = (
            str(value)
            .replace("R$", "")
            .replace(" ", "")
            .replace("\u00a0", "")
            .strip()
        )
        if not text:
            return None

        # Brazilian formatting: "100.000,50" or "100.000"
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        elif _BR_THOUSANDS.match(text):
            text = text.replace(".", "")

        try:
            number = float(text)
        except ValueError:
            return None

    return number if math.isfinite(number) else None


def coerce_row(row) -> MetricRecord | None:
    """
    Turn one loosely-shaped feed row into a MetricRecord, or None if invalid.
    """
    if not isinstance(row, dict):
        return None

    parsed_date = _parse_date(_pick(row, "data"))
    company_name = str(_pick(row, "empresa") or "").strip()
    target = _coerce_amount(_pick(row, "previsto"))
    actual = _coerce_amount(_pick(row, "realizado"))

    if parsed_date is None or not company_name or target is None or actual is None:
        return None

    return MetricRecord(
        date_iso=parsed_date.isoformat(),
        year=parsed_date.year,
        month=parsed_date.month,
        day=parsed_date.day,
        company_name=company_name,
        company_key=normalize_company_key(company_name),
        monthly_target=target,
        daily_actual=actual,
    )


def _feed_rows(payload) -> list:
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]

    if not isinstance(payload, list):
        raise UpstreamMalformed(
            f"feed must be a JSON array, got {type(payload).__name__}"
        )
    return payload


def parse_feed(payload) -> list[MetricRecord]:
    rows = _feed_rows(payload)

    records = []
    for row in rows:
        record = coerce_row(row)
        if record is None:
            logger.debug("Dropping invalid feed row: %r", row)
            continue
        records.append(record)

    dropped = len(rows) - len(records)
    if dropped:
        logger.info("Feed parsed: %d valid rows, %d dropped", len(records), dropped)

    return records


# --------------------------------------------------
# Feed access
# --------------------------------------------------

@dataclass(frozen=True)
class _FeedSnapshot:
    fetched_at: float
    records: tuple
    row_count: int
    sample: list


class FeedStore:
    """
    Single source of truth for metric records.
    Backed by the upstream "metas" feed with a short in-process cache.
    """

    def __init__(
        self,
        url: str | None,
        timeout_seconds: float = 8.0,
        cache_ttl_seconds: float = 30.0,
        session=None,
        clock=time.monotonic,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self.session = session or requests.Session()
        self.clock = clock
        self.cache: dict[str, _FeedSnapshot] = {}

    def fetch_records(self) -> list[MetricRecord]:
        return list(self._snapshot().records)

    def clear_cache(self):
        self.cache.pop(FEED_CACHE_NAME, None)

    def describe(self) -> dict:
        """
        Shape of the feed as last fetched: row counts, key schema and a sample.
        """
        snapshot = self._snapshot()
        first = snapshot.sample[0] if snapshot.sample else None

        return {
            "rows": snapshot.row_count,
            "valid_records": len(snapshot.records),
            "schema": list(first.keys()) if isinstance(first, dict) else None,
            "sample": snapshot.sample,
        }

    # --------------------------------------------------
    # Internal helpers
    # --------------------------------------------------

    def _snapshot(self) -> _FeedSnapshot:
        cached = self.cache.get(FEED_CACHE_NAME)

        if cached and self.clock() - cached.fetched_at < self.cache_ttl_seconds:
            _log_cache("HIT", FEED_CACHE_NAME)
            return cached

        _log_cache("MISS", FEED_CACHE_NAME)

        try:
            payload = self._download()
        except UpstreamUnavailable:
            if cached is None:
                raise
            logger.warning(
                "Feed unavailable, serving cached data from %.0fs ago",
                self.clock() - cached.fetched_at,
            )
            return cached

        rows = _feed_rows(payload)
        snapshot = _FeedSnapshot(
            fetched_at=self.clock(),
            records=tuple(parse_feed(rows)),
            row_count=len(rows),
            sample=rows[:5],
        )
        self.cache[FEED_CACHE_NAME] = snapshot
        return snapshot

    def _download(self):
        if not self.url:
            raise UpstreamUnavailable("METAS_URL is not configured")

        try:
            response = self.session.get(self.url, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"feed fetch failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamMalformed("feed body is not valid JSON") from exc
