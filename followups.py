from intent_classifier import Intent


def suggest_followups(plan):
    """
    Return a small set of follow-up questions the router can answer.
    """

    suggestions = []

    company = plan.company
    period = plan.period_label

    # -----------------------------
    # SUMMARY → drill-down options
    # -----------------------------
    if plan.intent == Intent.MONTH_SUMMARY:
        suggestions.append(f"Quem bateu a meta em {period}?")
        suggestions.append(f"Qual a projeção de {period}?")

    # -----------------------------
    # DAY RATIO → ranking or month view
    # -----------------------------
    elif plan.intent == Intent.DAY_RATIO:
        suggestions.append(f"Ranking do dia {plan.day_label}")
        if company:
            suggestions.append(f"Quanto falta para a meta no {company}?")

    # -----------------------------
    # RANKING → month context
    # -----------------------------
    elif plan.intent == Intent.DAY_RANKING:
        suggestions.append(f"Resumo de {period}")
        suggestions.append("Quem bateu a meta este mês?")

    # -----------------------------
    # PROJECTION / SHORTFALL → each other
    # -----------------------------
    elif plan.intent == Intent.MONTH_PROJECTION:
        suggestions.append(f"Quanto falta para a meta em {period}?")
        suggestions.append(f"Resumo de {period}")

    elif plan.intent == Intent.SHORTFALL:
        suggestions.append(f"Qual a projeção de {period}?")
        suggestions.append("Ranking de ontem")

    elif plan.intent == Intent.WHO_MET_TARGET:
        suggestions.append(f"Quanto falta para a meta em {period}?")
        suggestions.append("Ranking de hoje")

    return suggestions[:2]
