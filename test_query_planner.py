# test_query_planner.py

from datetime import date

import pytest

from intent_classifier import Intent, QuerySignals, classify_intent, routing_text
from query_planner import extract_company, extract_day, extract_month, plan_query

TODAY = date(2025, 8, 15)


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "query, expected",
    [
        ("% do dia 02/08/2025 no Mercatto", Intent.DAY_RATIO),
        ("Quanto vendi ontem no Mercatto?", Intent.DAY_RATIO),
        ("percentual de hoje da Villa Gourmet", Intent.DAY_RATIO),
        ("ranking de ontem", Intent.DAY_RANKING),
        ("Quem vendeu mais hoje?", Intent.DAY_RANKING),
        ("Quem bateu a meta em agosto?", Intent.WHO_MET_TARGET),
        ("quais empresas atingiram a meta no mês passado", Intent.WHO_MET_TARGET),
        ("Qual a projeção de fechamento do mês?", Intent.MONTH_PROJECTION),
        ("quanto falta para a meta no Mercatto", Intent.SHORTFALL),
        ("resumo do mês agosto 2025", Intent.MONTH_SUMMARY),
        ("vendas de julho", Intent.MONTH_SUMMARY),
        ("% de agosto no Mercatto", Intent.MONTH_SUMMARY),
        ("ajuda", Intent.HELP),
        ("/menu", Intent.HELP),
        ("bom dia!", Intent.FREEFORM),
        ("obrigado", Intent.FREEFORM),
        ("", Intent.FREEFORM),
    ],
)
def test_routing(query, expected):
    assert plan_query(query, TODAY).intent == expected


def test_metric_keyword_beats_generic_month_summary():
    # "resumo" and a month name would also match the summary rule
    assert plan_query("resumo de quem bateu a meta em julho", TODAY).intent == Intent.WHO_MET_TARGET
    assert plan_query("projeção do resumo de agosto", TODAY).intent == Intent.MONTH_PROJECTION


def test_long_message_mentioning_help_is_not_help():
    plan = plan_query("me ajuda com o resumo de agosto por favor", TODAY)
    assert plan.intent == Intent.MONTH_SUMMARY


def test_classify_intent_on_signals_directly():
    signals = QuerySignals(text="percentual", explicit_month=True)
    assert classify_intent(signals) == Intent.MONTH_SUMMARY
    signals = QuerySignals(text="percentual", explicit_day=True, explicit_month=True)
    assert classify_intent(signals) == Intent.DAY_RATIO


def test_routing_text_strips_accents_and_punctuation():
    assert routing_text("Projeção do MÊS?!") == "projecao do mes"


# ---------------------------------------------------------------------------
# Month references
# ---------------------------------------------------------------------------


class TestExtractMonth:
    def test_name_and_year(self):
        assert extract_month("resumo do mes agosto 2025", TODAY) == (8, 2025, True)

    def test_name_de_year(self):
        assert extract_month("resumo de marco de 2024", TODAY) == (3, 2024, True)

    def test_name_slash_year(self):
        assert extract_month("projecao de agosto/2024", TODAY) == (8, 2024, True)

    def test_name_without_year_in_past(self):
        assert extract_month("resumo de julho", TODAY) == (7, 2025, True)

    def test_name_without_year_in_future_means_last_year(self):
        assert extract_month("resumo de dezembro", TODAY) == (12, 2024, True)

    def test_last_month(self):
        assert extract_month("resumo do mes passado", TODAY) == (7, 2025, True)

    def test_last_month_across_year(self):
        assert extract_month("mes passado", date(2025, 1, 10)) == (12, 2024, True)

    def test_numeric_month(self):
        assert extract_month("resumo 06/2025", TODAY) == (6, 2025, True)

    def test_full_date_is_not_a_month_reference(self):
        assert extract_month("dia 02/08/2025", TODAY) == (8, 2025, False)

    def test_default_is_current_month(self):
        assert extract_month("resumo", TODAY) == (8, 2025, False)


# ---------------------------------------------------------------------------
# Day references
# ---------------------------------------------------------------------------


class TestExtractDay:
    def test_full_date(self):
        assert extract_day("dia 02/08/2025", TODAY) == (date(2025, 8, 2), True)

    def test_day_month_uses_current_year(self):
        assert extract_day("dia 02/08", TODAY) == (date(2025, 8, 2), True)

    def test_two_digit_year(self):
        assert extract_day("03/07/24", TODAY) == (date(2024, 7, 3), True)

    def test_relative_days(self):
        assert extract_day("hoje", TODAY) == (TODAY, True)
        assert extract_day("ontem", TODAY) == (date(2025, 8, 14), True)
        assert extract_day("anteontem", TODAY) == (date(2025, 8, 13), True)

    def test_day_of_current_month(self):
        assert extract_day("ranking do dia 5", TODAY) == (date(2025, 8, 5), True)

    def test_day_of_named_month(self):
        assert extract_day("ranking do dia 15 de julho", TODAY, 7, 2025) == (date(2025, 7, 15), True)

    def test_day_of_named_month_that_does_not_have_it(self):
        assert extract_day("dia 31 de junho", TODAY, 6, 2025) == (TODAY, False)

    def test_day_month_in_the_future_means_last_year(self):
        assert extract_day("% do dia 02/12", TODAY) == (date(2024, 12, 2), True)

    def test_day_month_later_this_month_means_last_year(self):
        assert extract_day("16/08", TODAY) == (date(2024, 8, 16), True)

    def test_explicit_year_is_kept_even_in_the_future(self):
        assert extract_day("02/12/2025", TODAY) == (date(2025, 12, 2), True)

    def test_invalid_date_falls_back_to_today(self):
        assert extract_day("31/02/2025", TODAY) == (TODAY, False)

    def test_default_is_today(self):
        assert extract_day("ranking", TODAY) == (TODAY, False)


# ---------------------------------------------------------------------------
# Company fragment
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text, expected",
    [
        ("% do dia 02/08/2025 no mercatto", "mercatto"),
        ("quanto vendi ontem no mercatto", "mercatto"),
        ("qual a projecao da villa gourmet para agosto", "villa gourmet"),
        ("resumo do mes agosto 2025", ""),
        ("quanto falta para bater a meta", ""),
        ("quem bateu a meta em agosto", ""),
        ("ranking de hoje", ""),
    ],
)
def test_extract_company(text, expected):
    assert extract_company(text) == expected


def test_plan_carries_extracted_arguments():
    plan = plan_query("% do dia 02/08/2025 no Mercatto", TODAY)

    assert plan.intent == Intent.DAY_RATIO
    assert plan.date_iso == "2025-08-02"
    assert plan.company == "mercatto"
    assert (plan.month, plan.year) == (8, 2025)


@pytest.mark.parametrize(
    "query, intent, date_iso",
    [
        ("ranking do dia 15 de julho", Intent.DAY_RANKING, "2025-07-15"),
        ("% do dia 10 de julho no Mercatto", Intent.DAY_RATIO, "2025-07-10"),
        ("ranking do dia 3 do mês passado", Intent.DAY_RANKING, "2025-07-03"),
    ],
)
def test_day_of_month_follows_the_named_month(query, intent, date_iso):
    plan = plan_query(query, date(2025, 8, 20))

    assert plan.intent == intent
    assert plan.date_iso == date_iso
    assert (plan.month, plan.year) == (7, 2025)


def test_day_without_year_in_the_future_plans_last_year():
    plan = plan_query("% do dia 02/12 no Mercatto", date(2025, 8, 20))

    assert plan.date_iso == "2024-12-02"
    assert (plan.month, plan.year) == (12, 2024)


def test_explicit_day_sets_month_for_month_operations():
    plan = plan_query("quem bateu a meta até 15/06", TODAY)
    assert (plan.month, plan.year) == (6, 2025)


def test_freeform_has_no_company():
    assert plan_query("bom dia no grupo", TODAY).company == ""
