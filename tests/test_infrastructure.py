import asyncio
from datetime import timedelta

import pytest
from fastapi_mail import FastMail

from shopeasy.core.exceptions import EmailDeliveryError
from shopeasy.core.infrastructure import redis_service
from shopeasy.core.infrastructure.email_service import NotificationGateway


def test_disabled_gateway_only_logs(mocker):
    send = mocker.patch.object(FastMail, "send_message")
    gateway = NotificationGateway(enabled=False)

    assert asyncio.run(gateway.send_otp("jane@example.com", "123456")) is True
    send.assert_not_called()


def test_enabled_gateway_sends_html(mocker):
    send = mocker.patch.object(FastMail, "send_message", return_value=None)
    gateway = NotificationGateway(enabled=True)

    assert asyncio.run(gateway.send_password_reset("jane@example.com", "http://shop/reset/abc")) is True

    message = send.call_args.args[0]
    assert message.subject == "Reset your ShopEasy password"
    assert "http://shop/reset/abc" in message.body


def test_delivery_failure_is_typed(mocker):
    mocker.patch.object(FastMail, "send_message", side_effect=ConnectionError("smtp unreachable"))
    gateway = NotificationGateway(enabled=True)

    with pytest.raises(EmailDeliveryError) as exc:
        asyncio.run(gateway.send_welcome("jane@example.com", "Jane"))
    assert exc.value.status_code == 502
    assert "smtp unreachable" in exc.value.technical_details


def test_denylist_fails_open_without_redis(mocker):
    mocker.patch.object(redis_service, "get_redis_client", return_value=None)
    redis_service.add_token_to_denylist("abc", timedelta(minutes=5))
    assert redis_service.is_token_denylisted("abc") is False


def test_denylist_round_trip(fake_redis):
    redis_service.add_token_to_denylist("abc", timedelta(seconds=90))

    assert fake_redis.expiries["denylist:abc"] == 90
    assert redis_service.is_token_denylisted("abc") is True
    assert redis_service.is_token_denylisted("other") is False


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["X-Request-ID"]


def test_user_supplied_text_is_escaped_in_html(mocker):
    send = mocker.patch.object(FastMail, "send_message", return_value=None)
    gateway = NotificationGateway(enabled=True)

    asyncio.run(gateway.send_welcome("jane@example.com", "<script>alert(1)</script>"))
    asyncio.run(gateway.send_security_alert("jane@example.com", '<img src="x">'))

    welcome, alert = (c.args[0].body for c in send.call_args_list)
    assert "<script>" not in welcome
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in welcome
    assert "&lt;img src=&quot;x&quot;&gt;" in alert
