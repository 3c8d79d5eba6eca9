from __future__ import annotations

import json

import httpx
import pytest

from taskboard_api.core.errors import UpstreamUnavailable
from taskboard_api.infra.email import LoggingEmailSender, SmtpEmailSender, build_email_sender
from taskboard_api.infra.push import (
    HttpPushSender,
    NullPushSender,
    PushSubscriptionGone,
    build_push_sender,
)
from taskboard_api.infra.text_generation import GeminiTextGenerator
from taskboard_api.settings import Settings

SUBSCRIPTION = {"endpoint": "https://push.test/abc", "keys": {"p256dh": "k", "auth": "a"}}


def _push_sender(handler) -> HttpPushSender:
    return HttpPushSender(
        gateway_url="https://gateway.test/send", transport=httpx.MockTransport(handler)
    )


def _generator(handler, api_key: str | None = "key-123") -> GeminiTextGenerator:
    return GeminiTextGenerator(
        api_key=api_key,
        model="gemini-test",
        base_url="https://ai.test/v1/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_push_sender_posts_subscription_and_payload() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201)

    await _push_sender(handler).send(SUBSCRIPTION, {"title": "Hi"})

    (request,) = requests
    assert str(request.url) == "https://gateway.test/send"
    assert json.loads(request.content) == {"subscription": SUBSCRIPTION, "payload": {"title": "Hi"}}


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [404, 410])
async def test_push_sender_reports_gone_subscriptions(status_code: int) -> None:
    sender = _push_sender(lambda request: httpx.Response(status_code))

    with pytest.raises(PushSubscriptionGone):
        await sender.send(SUBSCRIPTION, {})


@pytest.mark.asyncio
async def test_push_sender_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await _push_sender(handler).send(SUBSCRIPTION, {})
    assert not isinstance(excinfo.value, PushSubscriptionGone)


@pytest.mark.asyncio
async def test_push_sender_server_error() -> None:
    with pytest.raises(UpstreamUnavailable, match="503"):
        await _push_sender(lambda request: httpx.Response(503)).send(SUBSCRIPTION, {})


@pytest.mark.asyncio
async def test_gemini_generator_returns_candidate_text() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "- One\n"}, {"text": "- Two"}]}}]},
        )

    text = await _generator(handler).complete("plan it")

    assert text == "- One\n- Two"
    (request,) = requests
    assert request.url.path == "/v1/models/gemini-test:generateContent"
    assert request.url.params["key"] == "key-123"
    assert json.loads(request.content)["contents"][0]["parts"][0]["text"] == "plan it"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(429, json={"error": "quota"}),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, content=b"not json"),
    ],
)
async def test_gemini_generator_failures_raise_upstream(response: httpx.Response) -> None:
    with pytest.raises(UpstreamUnavailable):
        await _generator(lambda request: response).complete("plan it")


@pytest.mark.asyncio
async def test_gemini_generator_without_key_never_calls_out() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("unexpected request")

    with pytest.raises(UpstreamUnavailable, match="not configured"):
        await _generator(handler, api_key=None).complete("plan it")


def test_collaborators_default_to_offline_variants() -> None:
    settings = Settings(_env_file=None, jwt_secret="x" * 32)

    assert isinstance(build_email_sender(settings), LoggingEmailSender)
    assert isinstance(build_push_sender(settings), NullPushSender)


def test_collaborators_use_configured_services() -> None:
    settings = Settings(
        _env_file=None,
        jwt_secret="x" * 32,
        smtp_host="smtp.test",
        push_gateway_url="https://gateway.test/send",
    )

    assert isinstance(build_email_sender(settings), SmtpEmailSender)
    assert isinstance(build_push_sender(settings), HttpPushSender)


@pytest.mark.asyncio
async def test_smtp_failure_raises_upstream(monkeypatch: pytest.MonkeyPatch) -> None:
    sender = SmtpEmailSender(host="smtp.test", port=2525, sender="Taskboard <no-reply@test>")

    def refuse(message) -> None:
        raise ConnectionRefusedError("nope")

    monkeypatch.setattr(sender, "_deliver", refuse)

    with pytest.raises(UpstreamUnavailable):
        await sender.send("ada@example.com", "Hi", "Body")
