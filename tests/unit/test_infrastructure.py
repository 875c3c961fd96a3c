"""Unit tests for the infrastructure layer: HttpClient and ZeptoMailProvider."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from config import EmailSettings
from errors import DeliveryFailedError
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_post_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "post", return_value=fake_resp)
        resp = await client.post("http://example.com")
        assert resp.status_code == 200
        await client.aclose()

    async def test_timeout_is_applied(self):
        client = HttpClient(timeout=5.0)
        assert client._client.timeout == httpx.Timeout(5.0, connect=2.0)
        await client.aclose()

    async def test_connect_timeout_never_exceeds_total(self):
        client = HttpClient(timeout=1.0)
        assert client.timeout.connect == 1.0
        assert client.timeout.read == 1.0
        await client.aclose()

    async def test_explicit_connect_timeout(self):
        client = HttpClient(timeout=10.0, connect_timeout=3.0)
        assert client.timeout.connect == 3.0
        await client.aclose()

    async def test_post_propagates_exception(self, mocker):
        client = HttpClient()
        mocker.patch.object(
            client._client, "post", side_effect=httpx.ReadTimeout("timeout")
        )
        with pytest.raises(httpx.ReadTimeout, match="timeout"):
            await client.post("http://example.com")
        await client.aclose()

    async def test_context_manager(self):
        async with HttpClient() as client:
            assert client is not None


# ── ZeptoMailProvider ─────────────────────────────────────────────────────────


class TestZeptoMailProvider:
    def _make(self, token="test-token"):
        settings = EmailSettings(
            zepto_api_token=token,
            zepto_from_email="noreply@multibourn.app",
            zepto_from_name="Multibourn",
        )
        http = MagicMock()
        http.post = AsyncMock(return_value=MagicMock(status_code=201))
        return ZeptoMailProvider(settings=settings, http_client=http), http

    async def test_verification_email_renders_code(self):
        provider, http = self._make()
        await provider.send_verification_email("admin@x.com", "Gallery", "042117", 10)

        http.post.assert_awaited_once()
        payload = http.post.call_args.kwargs["json"]
        assert payload["to"][0]["email_address"]["address"] == "admin@x.com"
        assert payload["subject"] == "Verify your email - Gallery"
        assert "042117" in payload["htmlbody"]
        assert "10 minutes" in payload["textbody"]
        assert payload["from"]["address"] == "noreply@multibourn.app"

    async def test_reset_email_carries_link(self):
        provider, http = self._make()
        url = "https://admin.example.com/reset-password?token=abc"
        await provider.send_password_reset_email("admin@x.com", "Gallery", url, 10)

        payload = http.post.call_args.kwargs["json"]
        assert payload["subject"] == "Reset your password - Gallery"
        assert url in payload["textbody"]
        assert "reset-password?token=abc" in payload["htmlbody"]

    async def test_site_name_is_escaped_in_html(self):
        provider, http = self._make()
        await provider.send_verification_email("a@x.com", "<b>Gallery</b>", "123456", 10)
        assert "<b>Gallery</b>" not in http.post.call_args.kwargs["json"]["htmlbody"]

    async def test_raises_when_token_empty(self):
        provider, http = self._make(token="")
        with pytest.raises(DeliveryFailedError):
            await provider.send_verification_email("u@e.com", "Gallery", "000000", 10)
        http.post.assert_not_called()

    async def test_raises_on_non_2xx(self):
        provider, http = self._make()
        http.post.return_value = MagicMock(status_code=422, text="Unprocessable")
        with pytest.raises(DeliveryFailedError):
            await provider.send_verification_email("u@e.com", "Gallery", "000000", 10)

    async def test_raises_on_timeout(self):
        provider, http = self._make()
        http.post.side_effect = httpx.ConnectTimeout("timeout")
        with pytest.raises(DeliveryFailedError):
            await provider.send_password_reset_email("u@e.com", "Gallery", "https://x/r", 10)

    async def test_auth_header_prepends_prefix(self):
        provider, http = self._make(token="rawtoken")
        await provider.send_verification_email("u@e.com", "Gallery", "000000", 10)
        auth = http.post.call_args.kwargs["headers"]["Authorization"]
        assert auth == "Zoho-enczapikey rawtoken"

    async def test_auth_header_not_double_prefixed(self):
        provider, http = self._make(token="Zoho-enczapikey alreadyprefixed")
        await provider.send_verification_email("u@e.com", "Gallery", "000000", 10)
        auth = http.post.call_args.kwargs["headers"]["Authorization"]
        assert auth == "Zoho-enczapikey alreadyprefixed"
