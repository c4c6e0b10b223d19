# test_ollama_client.py

from unittest.mock import Mock

import pytest
import requests

from errors import CollaboratorFailure, CollaboratorQuotaExceeded
from llm.ollama_client import OllamaClient, build_prompt


def _client(status=200, body=None, text="", error=None):
    response = Mock(status_code=status, text=text)
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body

    session = Mock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return OllamaClient(url="http://llm.test/api/generate", model="m", timeout=3, session=session), session


def test_render_posts_instruction_and_context():
    client, session = _client(body={"response": "  Mercatto fez 12,0%.  "})

    text = client.render("Responda em PT-BR.", {"resultado": {"pct": 12.0}})

    assert text == "Mercatto fez 12,0%."
    _, kwargs = session.post.call_args
    assert kwargs["timeout"] == 3
    assert kwargs["json"]["model"] == "m"
    assert kwargs["json"]["stream"] is False
    assert '"pct": 12.0' in kwargs["json"]["prompt"]


def test_build_prompt_keeps_accents():
    assert "março" in build_prompt("x", {"mes": "março/2025"})


@pytest.mark.parametrize("status", [402, 429])
def test_quota_status(status):
    client, _ = _client(status=status)
    with pytest.raises(CollaboratorQuotaExceeded):
        client.render("x", {})


def test_quota_wording_in_error_body():
    client, _ = _client(status=403, text='{"error": "Insufficient quota for this key"}')
    with pytest.raises(CollaboratorQuotaExceeded):
        client.render("x", {})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"status": 500, "text": "internal"},
        {"body": ValueError("not json")},
        {"body": {"other": "field"}},
        {"body": {"response": "   "}},
        {"error": requests.Timeout("slow")},
    ],
)
def test_other_failures(kwargs):
    client, _ = _client(**kwargs)
    with pytest.raises(CollaboratorFailure) as exc_info:
        client.render("x", {})
    assert not isinstance(exc_info.value, CollaboratorQuotaExceeded)
