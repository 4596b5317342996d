import httpx
import pytest

from tempo.core.errors import CredentialError, ProviderConnectionError, ProviderError
from tempo.core.prompt_builder import LayeredPrompt, PromptLayer
from tempo.services import llm
from tempo.services.llm import AnthropicAdviceClient, build_payload

from conftest import TEST_CREDENTIAL

PROMPT = LayeredPrompt(
    instructions=PromptLayer(text="You are a health advisor.", cache_eligible=True),
    examples=PromptLayer(text='<examples interest="fitness"></examples>', cache_eligible=True),
    user_data="<user_data>\n</user_data>",
)

OK_BODY = {
    "id": "msg_1",
    "model": "claude-sonnet-4-20250514",
    "stop_reason": "end_turn",
    "content": [{"type": "text", "text": '{"greeting": "hi"}'}],
    "usage": {"input_tokens": 1200, "output_tokens": 300, "cache_read_input_tokens": 1000},
}


class RecordingPost:
    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    def __call__(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        status_code, body = outcome
        return httpx.Response(status_code, json=body, request=httpx.Request("POST", url))


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr(llm, "LLM_RETRY_BACKOFF_SECONDS", 0.0)
    monkeypatch.setattr(llm, "LLM_RETRY_COUNT", 1)


def _install(monkeypatch, *outcomes) -> RecordingPost:
    post = RecordingPost(*outcomes)
    monkeypatch.setattr(llm.httpx, "post", post)
    return post


@pytest.mark.parametrize("credential", [None, "", "   ", "sk-ant-api03-xxxxxxxxxxxx", "your-api-key", "<API_KEY>", "changeme"])
def test_invalid_credential_never_reaches_network(monkeypatch, credential) -> None:
    post = _install(monkeypatch, (200, OK_BODY))
    with pytest.raises(CredentialError):
        AnthropicAdviceClient().generate(PROMPT, credential)
    assert post.calls == []


def test_generate_sends_cache_eligible_layers(monkeypatch) -> None:
    post = _install(monkeypatch, (200, OK_BODY))
    output = AnthropicAdviceClient().generate(PROMPT, TEST_CREDENTIAL)
    assert output.content[0]["text"] == '{"greeting": "hi"}'
    assert output.usage["cache_read_input_tokens"] == 1000

    call = post.calls[0]
    assert call["headers"]["x-api-key"] == TEST_CREDENTIAL
    assert call["headers"]["anthropic-version"] == llm.ANTHROPIC_API_VERSION
    system = call["json"]["system"]
    assert [block["cache_control"] for block in system] == [{"type": "ephemeral"}, {"type": "ephemeral"}]
    assert call["json"]["messages"] == [{"role": "user", "content": PROMPT.user_data}]
    assert isinstance(call["timeout"], httpx.Timeout)


def test_build_payload_omits_cache_control_for_dynamic_layers() -> None:
    prompt = LayeredPrompt(instructions=PromptLayer(text="static"), examples=None, user_data="data")
    payload = build_payload(prompt)
    assert payload["system"] == [{"type": "text", "text": "static"}]
    assert payload["max_tokens"] == llm.LLM_MAX_TOKENS


def test_transient_server_error_is_retried_once(monkeypatch, no_backoff) -> None:
    post = _install(monkeypatch, (503, {"error": "busy"}), (200, OK_BODY))
    output = AnthropicAdviceClient().generate(PROMPT, TEST_CREDENTIAL)
    assert output.stop_reason == "end_turn"
    assert len(post.calls) == 2


def test_repeated_server_error_becomes_provider_error(monkeypatch, no_backoff) -> None:
    post = _install(monkeypatch, (529, {"error": "overloaded"}), (529, {"error": "overloaded"}))
    with pytest.raises(ProviderError) as exc_info:
        AnthropicAdviceClient().generate(PROMPT, TEST_CREDENTIAL)
    assert exc_info.value.status_code == 529
    assert len(post.calls) == 2


@pytest.mark.parametrize("status_code", [400, 404, 429])
def test_client_errors_are_not_retried(monkeypatch, no_backoff, status_code) -> None:
    post = _install(monkeypatch, (status_code, {"error": "bad"}), (200, OK_BODY))
    with pytest.raises(ProviderError) as exc_info:
        AnthropicAdviceClient().generate(PROMPT, TEST_CREDENTIAL)
    assert exc_info.value.status_code == status_code
    assert len(post.calls) == 1


def test_rejected_key_is_a_credential_error(monkeypatch, no_backoff) -> None:
    post = _install(monkeypatch, (401, {"error": "invalid x-api-key"}))
    with pytest.raises(CredentialError) as exc_info:
        AnthropicAdviceClient().generate(PROMPT, TEST_CREDENTIAL)
    assert TEST_CREDENTIAL not in str(exc_info.value)
    assert len(post.calls) == 1


def test_timeouts_are_retried_then_normalized(monkeypatch, no_backoff) -> None:
    request = httpx.Request("POST", llm.ANTHROPIC_API_URL)
    post = _install(
        monkeypatch,
        httpx.ReadTimeout("timed out", request=request),
        httpx.ConnectError("connection refused", request=request),
    )
    with pytest.raises(ProviderConnectionError):
        AnthropicAdviceClient().generate(PROMPT, TEST_CREDENTIAL)
    assert len(post.calls) == 2
