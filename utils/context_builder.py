def build_context(plan, result: dict, session=None) -> dict:
    """
    JSON context handed to the renderer: the question, the scope and the
    already-computed numbers.
    """
    context = {
        "pergunta": plan.text,
        "operacao": plan.intent.value,
        "periodo": {
            "mes": plan.period_label,
            "dia": plan.day_label,
        },
        "resultado": result,
    }

    if session is not None and (session.summary or session.turns):
        context["conversa"] = {
            "resumo": session.summary,
            "ultimas_mensagens": session.recent(),
        }

    return context


def build_freeform_context(user_query: str, examples, session=None) -> dict:
    context = {
        "mensagem": user_query,
        "exemplos": list(examples),
    }

    if session is not None:
        context["conversa"] = {
            "resumo": session.summary,
            "ultimas_mensagens": session.recent(),
        }

    return context
