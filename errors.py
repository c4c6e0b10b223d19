# errors.py
"""
Failures the request boundary knows how to turn into a user-facing payload.
"""


class AssistantError(Exception):
    code = "INTERNAL_ERROR"
    user_message = "⚠️ Tive um problema ao responder. Tente novamente em instantes."

    def __init__(self, detail: str = "", user_message: str | None = None):
        super().__init__(detail or self.code)
        if user_message:
            self.user_message = user_message


class UpstreamUnavailable(AssistantError):
    code = "UPSTREAM_UNAVAILABLE"
    user_message = (
        "⚠️ Os dados dos painéis estão indisponíveis no momento. "
        "Tente novamente em alguns minutos."
    )


class UpstreamMalformed(AssistantError):
    code = "UPSTREAM_MALFORMED"
    user_message = (
        "⚠️ Os painéis retornaram dados em um formato que não consigo ler. "
        "Verifique a planilha de metas."
    )


class NoMatchingData(AssistantError):
    code = "NO_MATCHING_DATA"
    user_message = "Não encontrei dados para esse período."


class RateLimited(AssistantError):
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"rate limited, retry in {retry_after_seconds}s",
            user_message=(
                "⏳ Muitas perguntas em sequência. "
                f"Tente novamente em {retry_after_seconds} segundos."
            ),
        )


class CollaboratorFailure(AssistantError):
    code = "COLLABORATOR_FAILURE"
    user_message = "⚠️ Desculpe, não consegui elaborar a resposta agora. Tente novamente."


class CollaboratorQuotaExceeded(CollaboratorFailure):
    code = "COLLABORATOR_QUOTA"
    user_message = (
        "⚠️ O assistente está temporariamente indisponível (limite de uso atingido). "
        "Tente novamente mais tarde."
    )
