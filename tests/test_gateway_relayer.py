"""Tests for the HTTP relayer gateway."""

import json

import httpx
import pytest

from cipherledger.core.config import Config
from cipherledger.core.exceptions import ConfigurationError, GatewayError, InvalidCiphertextError
from cipherledger.core.types import CiphertextHandle
from cipherledger.gateway import LocalGateway, RelayerGateway, get_gateway

BASE_URL = "https://relayer.test/v1"
H1 = "0x" + "11" * 32
H2 = "0x" + "22" * 32
H3 = "0x" + "33" * 32


def make_gateway(handler, retries: int = 1) -> RelayerGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RelayerGateway(BASE_URL, http_client=client, retries=retries, retry_wait=0)


class TestIngest:
    @pytest.mark.asyncio
    async def test_ingest_posts_hex(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"handle": H1})

        gateway = make_gateway(handler)
        handle = await gateway.ingest(b"\x01\x02", b"\x03")

        assert handle == CiphertextHandle.from_hex(H1)
        assert seen["url"] == f"{BASE_URL}/inputs"
        assert seen["body"] == {"ciphertext": "0x0102", "proof": "0x03"}

    @pytest.mark.asyncio
    async def test_client_error_means_invalid_ciphertext(self):
        gateway = make_gateway(lambda request: httpx.Response(422, text="bad proof"))

        with pytest.raises(InvalidCiphertextError) as exc_info:
            await gateway.ingest(b"\x01", b"\x02")
        assert exc_info.value.details["status_code"] == 422

    @pytest.mark.asyncio
    async def test_server_error_is_gateway_error(self):
        gateway = make_gateway(lambda request: httpx.Response(503, text="down"))

        with pytest.raises(GatewayError) as exc_info:
            await gateway.ingest(b"\x01", b"\x02")
        assert exc_info.value.is_server_error()

    @pytest.mark.asyncio
    async def test_malformed_handle(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"handle": "0x1234"}))

        with pytest.raises(GatewayError, match="invalid handle"):
            await gateway.ingest(b"\x01", b"\x02")

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        gateway = make_gateway(handler)

        with pytest.raises(GatewayError, match="failed"):
            await gateway.ingest(b"\x01", b"\x02")


class TestRetries:
    @pytest.mark.asyncio
    async def test_server_error_retried(self):
        responses = [httpx.Response(503), httpx.Response(502), httpx.Response(200, json={"handle": H1})]
        gateway = make_gateway(lambda request: responses.pop(0), retries=3)

        assert await gateway.ingest(b"\x01", b"\x02") == CiphertextHandle.from_hex(H1)
        assert responses == []

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        gateway = make_gateway(handler, retries=3)

        with pytest.raises(GatewayError, match="failed"):
            await gateway.zero()
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(422, text="bad proof")

        gateway = make_gateway(handler, retries=3)

        with pytest.raises(InvalidCiphertextError):
            await gateway.ingest(b"\x01", b"\x02")
        assert len(calls) == 1


class TestOperations:
    @pytest.mark.asyncio
    async def test_arithmetic_routes(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, request.url.path))
            return httpx.Response(200, json={"handle": H3})

        gateway = make_gateway(handler)
        a = CiphertextHandle.from_hex(H1)
        b = CiphertextHandle.from_hex(H2)

        assert await gateway.add(a, b) == CiphertextHandle.from_hex(H3)
        await gateway.subtract(a, b)
        await gateway.zero()

        assert calls == [
            ("POST", "/v1/ops/add"),
            ("POST", "/v1/ops/sub"),
            ("GET", "/v1/ops/zero"),
        ]

    @pytest.mark.asyncio
    async def test_grant_and_check_public(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"granted": True})
            return httpx.Response(200, json={"public": True})

        gateway = make_gateway(handler)
        handle = CiphertextHandle.from_hex(H1)

        await gateway.grant_public_decryption(handle)
        assert await gateway.is_publicly_decryptable(handle)

    @pytest.mark.asyncio
    async def test_refused_grant(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"granted": False}))

        with pytest.raises(GatewayError, match="refused"):
            await gateway.grant_public_decryption(CiphertextHandle.from_hex(H1))

    @pytest.mark.asyncio
    async def test_verify_proof(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            return httpx.Response(200, json={"valid": body["proof"] == "0xaa"})

        gateway = make_gateway(handler)
        handle = CiphertextHandle.from_hex(H1)

        assert await gateway.verify_proof(handle, b"\x00" * 32, b"\xaa")
        assert not await gateway.verify_proof(handle, b"\x00" * 32, b"\xbb")
        assert not await gateway.verify_proof(handle, b"\x00" * 32, "0xnothex")

    @pytest.mark.asyncio
    async def test_health_check(self):
        healthy = make_gateway(lambda request: httpx.Response(200, json={}))
        broken = make_gateway(lambda request: httpx.Response(500))

        assert await healthy.health_check() is True
        assert await broken.health_check() is False

    @pytest.mark.asyncio
    async def test_close_keeps_shared_client_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        gateway = RelayerGateway(BASE_URL, http_client=client)

        await gateway.close()

        assert not client.is_closed
        await client.aclose()


class TestFactory:
    def test_local_by_default(self):
        gateway = get_gateway(Config(amount_bits=64))
        assert isinstance(gateway, LocalGateway)
        assert gateway.amount_bits == 64

    def test_relayer_from_config(self):
        gateway = get_gateway(Config(gateway="relayer", relayer_url=BASE_URL + "/"))
        assert isinstance(gateway, RelayerGateway)
        assert gateway._base_url == BASE_URL
        assert gateway._retries == 3

    def test_unknown_gateway(self):
        with pytest.raises(ConfigurationError, match="Unknown gateway"):
            get_gateway(Config(gateway="quantum"))
