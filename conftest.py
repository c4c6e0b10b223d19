# conftest.py

from datetime import date

import fakeredis
import pytest

from data_store import MetricRecord, normalize_company_key
from errors import CollaboratorFailure


def make_record(day_iso, company, target, actual):
    day = date.fromisoformat(day_iso)
    return MetricRecord(
        date_iso=day_iso,
        year=day.year,
        month=day.month,
        day=day.day,
        company_name=company,
        company_key=normalize_company_key(company),
        monthly_target=float(target),
        daily_actual=float(actual),
    )


class FakeRenderer:
    """Stands in for the LLM: records calls, returns a canned text or fails."""

    def __init__(self, reply="resposta gerada", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def render(self, instruction, context):
        self.calls.append((instruction, context))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeFeed:
    def __init__(self, records=None, error=None):
        self.records = list(records or [])
        self.error = error
        self.calls = 0

    def fetch_records(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture()
def mercatto_feed_rows():
    return [
        {"Data": "2025-08-02", "Empresa": "Mercatto", "Previsto": 100000, "Realizado": 5000},
        {"Data": "2025-08-03", "Empresa": "Mercatto", "Previsto": 100000, "Realizado": 7000},
    ]


@pytest.fixture()
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def failing_renderer():
    return FakeRenderer(error=CollaboratorFailure("llm down"))
