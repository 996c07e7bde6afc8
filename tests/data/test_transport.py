"""Tests for the HTTP transport."""

import httpx
import pytest
import pytest_asyncio
import respx
from pydantic import TypeAdapter

from config_discovery.core.errors import DecodeError, TransportError
from config_discovery.core.types import AppConfig, Asset
from config_discovery.data.transport import HttpTransport


class TestHttpTransport:
    """Test HttpTransport fetch and error mapping."""

    @pytest_asyncio.fixture
    async def transport(self):
        """Transport with its own httpx client."""
        transport = HttpTransport(timeout=1.0)
        yield transport
        await transport.close()

    def test_init_with_session(self):
        """Test an injected session is used and not owned."""
        session = httpx.AsyncClient()
        transport = HttpTransport(session=session, timeout=2.0)

        assert transport.session is session
        assert transport.timeout == 2.0
        assert transport._owns_session is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_model(self, transport, base_url, app_config_payload):
        """Test a 200 response is decoded into the requested model."""
        route = respx.get(base_url).mock(
            return_value=httpx.Response(200, json=app_config_payload)
        )

        config = await transport.fetch(base_url, AppConfig)

        assert route.called
        assert isinstance(config, AppConfig)
        assert config.composed_at == app_config_payload["composedAt"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_type_adapter(self, transport, base_url, assets_payload):
        """Test decoding with a prebuilt TypeAdapter."""
        respx.get(f"{base_url}/assets").mock(
            return_value=httpx.Response(200, json=assets_payload)
        )

        assets = await transport.fetch(f"{base_url}/assets", TypeAdapter(list[Asset]))

        assert [a.name for a in assets] == ["BTC", "LTC", "EURUSD", "NEW"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_plain_type(self, transport, base_url):
        """Test decoding with a plain generic type."""
        respx.get(f"{base_url}/raw").mock(
            return_value=httpx.Response(200, json={"a": {"1": "x"}})
        )

        data = await transport.fetch(f"{base_url}/raw", dict[str, dict[str, str]])

        assert data == {"a": {"1": "x"}}

    @pytest.mark.asyncio
    @respx.mock
    @pytest.mark.parametrize("status_code", [201, 404, 500, 503])
    async def test_non_ok_status(self, transport, base_url, status_code):
        """Test any status other than 200 is a transport error."""
        respx.get(base_url).mock(
            return_value=httpx.Response(status_code, json={"composedAt": "t1"})
        )

        with pytest.raises(TransportError) as exc_info:
            await transport.fetch(base_url, AppConfig)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.url == base_url

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error(self, transport, base_url):
        """Test connection failures are transport errors."""
        respx.get(base_url).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(TransportError) as exc_info:
            await transport.fetch(base_url, AppConfig)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self, transport, base_url):
        """Test timeouts are transport errors."""
        respx.get(base_url).mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(TransportError, match="timed out"):
            await transport.fetch(base_url, AppConfig)

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_json(self, transport, base_url):
        """Test a body that is not JSON is a decode error."""
        respx.get(base_url).mock(return_value=httpx.Response(200, text="<html>"))

        with pytest.raises(DecodeError) as exc_info:
            await transport.fetch(base_url, AppConfig)

        assert exc_info.value.url == base_url

    @pytest.mark.asyncio
    @respx.mock
    async def test_unexpected_shape(self, transport, base_url):
        """Test JSON of the wrong shape is a decode error."""
        respx.get(base_url).mock(
            return_value=httpx.Response(200, json={"openedMarkets": "nope"})
        )

        with pytest.raises(DecodeError):
            await transport.fetch(base_url, AppConfig)

    @pytest.mark.asyncio
    async def test_close_keeps_injected_session(self):
        """Test close() leaves an injected session open."""
        session = httpx.AsyncClient()
        transport = HttpTransport(session=session)

        await transport.close()

        assert not session.is_closed
        await session.aclose()
