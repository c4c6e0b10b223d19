def format_brl(value) -> str:
    text = f"{float(value):,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_pct(value) -> str:
    return f"{float(value):.1f}".replace(".", ",") + "%"


def _period(context):
    return context["periodo"]["mes"]


def _day(context):
    return context["periodo"]["dia"]


def _month_summary(context, result):
    lines = [f"📊 Resumo de {_period(context)}:"]
    for c in result["empresas"]:
        mark = "✅" if c["bateu"] else "❌"
        lines.append(
            f"• {c['empresa']}: {format_brl(c['realizado'])} de "
            f"{format_brl(c['previsto'])} ({format_pct(c['pct'])}) {mark}"
        )
    totals = result["totais"]
    lines.append(
        f"Total do grupo: {format_brl(totals['realizado'])} de "
        f"{format_brl(totals['previsto'])} ({format_pct(totals['pct'])})"
    )
    return "\n".join(lines)


def _day_ratio(context, result):
    return (
        f"{result['empresa']} em {_day(context)}: realizado {format_brl(result['realizado'])} "
        f"sobre a meta mensal de {format_brl(result['previsto'])} ({format_pct(result['pct'])})."
    )


def _day_ranking(context, result):
    lines = [f"🏆 Ranking de {_day(context)} (% da meta mensal):"]
    for c in result["ranking"]:
        lines.append(
            f"{c['posicao']}. {c['empresa']}: {format_pct(c['pct'])} "
            f"({format_brl(c['realizado'])})"
        )
    return "\n".join(lines)


def _projection(context, result):
    lines = [f"📈 Projeção de fechamento de {_period(context)}:"]
    for c in result["empresas"]:
        lines.append(
            f"• {c['empresa']}: {format_brl(c['projecao'])} "
            f"({format_pct(c['pct_projetado'])} da meta), faltam {format_brl(c['falta'])}"
        )
    totals = result["totais"]
    lines.append(
        f"Total projetado: {format_brl(totals['projecao'])} "
        f"({format_pct(totals['pct_projetado'])} da meta)"
    )
    return "\n".join(lines)


def _who_met(context, result):
    if not result["empresas"]:
        return f"Nenhuma empresa bateu a meta de {_period(context)} até agora."
    names = ", ".join(c["empresa"] for c in result["empresas"])
    return f"🎯 Bateram a meta de {_period(context)}: {names}."


def _shortfall(context, result):
    if not result["empresas"]:
        return f"Todas as empresas já atingiram a meta de {_period(context)}. 🎉"
    lines = [f"Quanto falta para a meta de {_period(context)}:"]
    for c in result["empresas"]:
        lines.append(f"• {c['empresa']}: {format_brl(c['falta'])}")
    lines.append(f"Total: {format_brl(result['total_falta'])}")
    return "\n".join(lines)


FORMATTERS = {
    "resumo_mes": _month_summary,
    "percentual_dia": _day_ratio,
    "ranking_dia": _day_ranking,
    "projecao_mes": _projection,
    "quem_bateu": _who_met,
    "falta_meta": _shortfall,
}


def fallback_explanation(context: dict) -> str:
    result = context["resultado"]
    return FORMATTERS[result["tipo"]](context, result)
