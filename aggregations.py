# chatbot/aggregations.py
"""
Pure aggregation functions over MetricRecords.

Targets are monthly goals repeated on every day row, so month-level
groupings collapse them with max. Actuals are daily amounts and are summed.
Values keep full precision here; rounding happens in `to_dict()` and in the
text formatters.
"""

import calendar
from dataclasses import asdict, dataclass, fields
from datetime import date

import pandas as pd

from data_store import MetricRecord
from errors import NoMatchingData

RECORD_COLUMNS = [f.name for f in fields(MetricRecord)]


def pct_of(actual: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return 100.0 * actual / target


def _money(value: float) -> float:
    return round(float(value), 2)


# --------------------------------------------------
# Result types
# --------------------------------------------------

@dataclass(frozen=True)
class CompanyMonth:
    company: str
    company_key: str
    target: float
    actual_sum: float
    pct: float
    met_target: bool

    def to_dict(self) -> dict:
        return {
            "empresa": self.company,
            "previsto": _money(self.target),
            "realizado": _money(self.actual_sum),
            "pct": _money(self.pct),
            "bateu": self.met_target,
        }


@dataclass(frozen=True)
class MonthTotals:
    target: float
    actual_sum: float
    pct: float

    def to_dict(self) -> dict:
        return {
            "previsto": _money(self.target),
            "realizado": _money(self.actual_sum),
            "pct": _money(self.pct),
        }


@dataclass(frozen=True)
class MonthSummary:
    month: int
    year: int
    companies: tuple
    totals: MonthTotals

    def to_dict(self) -> dict:
        return {
            "tipo": "resumo_mes",
            "mes": self.month,
            "ano": self.year,
            "empresas": [c.to_dict() for c in self.companies],
            "totais": self.totals.to_dict(),
        }


@dataclass(frozen=True)
class DayRatio:
    company: str
    company_key: str
    date_iso: str
    target: float
    actual: float
    pct: float

    def to_dict(self) -> dict:
        return {
            "tipo": "percentual_dia",
            "empresa": self.company,
            "data": self.date_iso,
            "previsto": _money(self.target),
            "realizado": _money(self.actual),
            "pct": _money(self.pct),
        }


@dataclass(frozen=True)
class CompanyDay:
    company: str
    company_key: str
    target: float
    actual: float
    pct: float

    def to_dict(self) -> dict:
        return {
            "empresa": self.company,
            "previsto": _money(self.target),
            "realizado": _money(self.actual),
            "pct": _money(self.pct),
        }


@dataclass(frozen=True)
class DayRanking:
    date_iso: str
    companies: tuple

    def to_dict(self) -> dict:
        return {
            "tipo": "ranking_dia",
            "data": self.date_iso,
            "ranking": [
                {"posicao": position, **c.to_dict()}
                for position, c in enumerate(self.companies, start=1)
            ],
        }


@dataclass(frozen=True)
class CompanyProjection:
    company: str
    company_key: str
    target: float
    actual_to_date: float
    days_elapsed: int
    projected_total: float
    projected_pct: float
    shortfall: float

    def to_dict(self) -> dict:
        return {
            "empresa": self.company,
            "previsto": _money(self.target),
            "realizado_ate_agora": _money(self.actual_to_date),
            "dias_decorridos": self.days_elapsed,
            "projecao": _money(self.projected_total),
            "pct_projetado": _money(self.projected_pct),
            "falta": _money(self.shortfall),
        }


@dataclass(frozen=True)
class ProjectionTotals:
    target: float
    actual_to_date: float
    projected_total: float
    projected_pct: float
    shortfall: float

    def to_dict(self) -> dict:
        return {
            "previsto": _money(self.target),
            "realizado_ate_agora": _money(self.actual_to_date),
            "projecao": _money(self.projected_total),
            "pct_projetado": _money(self.projected_pct),
            "falta": _money(self.shortfall),
        }


@dataclass(frozen=True)
class MonthProjection:
    month: int
    year: int
    days_in_month: int
    companies: tuple
    totals: ProjectionTotals

    def to_dict(self) -> dict:
        return {
            "tipo": "projecao_mes",
            "mes": self.month,
            "ano": self.year,
            "dias_no_mes": self.days_in_month,
            "empresas": [c.to_dict() for c in self.companies],
            "totais": self.totals.to_dict(),
        }


# --------------------------------------------------
# Internal helpers
# --------------------------------------------------

def _frame(records) -> pd.DataFrame:
    return pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)


def _month_scope(records, month: int, year: int, company_keys=None) -> pd.DataFrame:
    df = _frame(records)
    scoped = df[(df["year"] == year) & (df["month"] == month)]

    if company_keys:
        scoped = scoped[scoped["company_key"].isin(list(company_keys))]

    if scoped.empty:
        raise NoMatchingData(f"No records for {month:02d}/{year}")

    return scoped.sort_values("date_iso", kind="stable")


def _group_month(scoped: pd.DataFrame) -> pd.DataFrame:
    return scoped.groupby("company_key", sort=False).agg(
        company=("company_name", "last"),
        target=("monthly_target", "max"),
        actual=("daily_actual", "sum"),
        last_day=("day", "max"),
    )


# --------------------------------------------------
# Public API
# --------------------------------------------------

def month_summary(records, month: int, year: int, company_keys=None) -> MonthSummary:
    grouped = _group_month(_month_scope(records, month, year, company_keys))

    companies = []
    for row in grouped.itertuples():
        target = float(row.target)
        actual = float(row.actual)
        companies.append(
            CompanyMonth(
                company=row.company,
                company_key=row.Index,
                target=target,
                actual_sum=actual,
                pct=pct_of(actual, target),
                met_target=target > 0 and actual >= target,
            )
        )

    companies.sort(key=lambda c: (-c.pct, c.company))

    total_target = sum(c.target for c in companies)
    total_actual = sum(c.actual_sum for c in companies)

    return MonthSummary(
        month=month,
        year=year,
        companies=tuple(companies),
        totals=MonthTotals(
            target=total_target,
            actual_sum=total_actual,
            pct=pct_of(total_actual, total_target),
        ),
    )


def day_ratio(records, company_key: str, date_iso: str) -> DayRatio | None:
    """
    Single day's actual against the company's full monthly target.

    Returns None when the company has no row for that day, so "no data"
    stays distinguishable from a zero result.
    """
    df = _frame(records)
    rows = df[(df["company_key"] == company_key) & (df["date_iso"] == date_iso)]

    if rows.empty:
        return None

    target = float(rows["monthly_target"].sum())
    actual = float(rows["daily_actual"].sum())

    return DayRatio(
        company=rows["company_name"].iloc[-1],
        company_key=company_key,
        date_iso=date_iso,
        target=target,
        actual=actual,
        pct=pct_of(actual, target),
    )


def day_ranking(records, date_iso: str) -> DayRanking:
    df = _frame(records)
    scoped = df[df["date_iso"] == date_iso]

    if scoped.empty:
        raise NoMatchingData(f"No records for {date_iso}")

    grouped = scoped.groupby("company_key", sort=False).agg(
        company=("company_name", "last"),
        target=("monthly_target", "sum"),
        actual=("daily_actual", "sum"),
    )

    companies = [
        CompanyDay(
            company=row.company,
            company_key=row.Index,
            target=float(row.target),
            actual=float(row.actual),
            pct=pct_of(float(row.actual), float(row.target)),
        )
        for row in grouped.itertuples()
    ]
    companies.sort(key=lambda c: (-c.pct, c.company))

    return DayRanking(date_iso=date_iso, companies=tuple(companies))


def month_projection(
    records, month: int, year: int, today: date, company_keys=None
) -> MonthProjection:
    """
    Linear month-end projection from the average daily rate observed so far.
    """
    grouped = _group_month(_month_scope(records, month, year, company_keys))

    days_in_month = calendar.monthrange(year, month)[1]
    is_current_month = (today.year, today.month) == (year, month)

    companies = []
    for row in grouped.itertuples():
        target = float(row.target)
        actual = float(row.actual)

        days_elapsed = max(1, int(row.last_day))
        if is_current_month:
            days_elapsed = max(1, min(days_elapsed, today.day))

        if days_elapsed >= days_in_month:
            projected = actual
        else:
            projected = actual / days_elapsed * days_in_month

        companies.append(
            CompanyProjection(
                company=row.company,
                company_key=row.Index,
                target=target,
                actual_to_date=actual,
                days_elapsed=days_elapsed,
                projected_total=projected,
                projected_pct=pct_of(projected, target),
                shortfall=max(0.0, target - actual),
            )
        )

    companies.sort(key=lambda c: (-c.projected_pct, c.company))

    total_target = sum(c.target for c in companies)
    total_projected = sum(c.projected_total for c in companies)

    return MonthProjection(
        month=month,
        year=year,
        days_in_month=days_in_month,
        companies=tuple(companies),
        totals=ProjectionTotals(
            target=total_target,
            actual_to_date=sum(c.actual_to_date for c in companies),
            projected_total=total_projected,
            projected_pct=pct_of(total_projected, total_target),
            shortfall=sum(c.shortfall for c in companies),
        ),
    )


def who_met_target(summary: MonthSummary) -> tuple:
    return tuple(c for c in summary.companies if c.met_target)


def shortfall_ranking(projection: MonthProjection) -> tuple:
    behind = [c for c in projection.companies if c.shortfall > 0]
    behind.sort(key=lambda c: (-c.shortfall, c.company))
    return tuple(behind)
