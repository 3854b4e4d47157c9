"""
HTTP relayer gateway.

Talks to a remote encryption coprocessor over a small JSON API:

    POST /inputs               {"ciphertext", "proof"}          -> {"handle"}
    POST /ops/add              {"lhs", "rhs"}                   -> {"handle"}
    POST /ops/sub              {"lhs", "rhs"}                   -> {"handle"}
    GET  /ops/zero                                              -> {"handle"}
    POST /acl/public           {"handle"}                       -> {"granted"}
    GET  /acl/public/{handle}                                   -> {"public"}
    POST /decryption/verify    {"handle", "cleartext", "proof"} -> {"valid"}
    GET  /health

All binary values travel as 0x-prefixed hex.
"""

from __future__ import annotations

from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from cipherledger.core.exceptions import GatewayError, InvalidCiphertextError
from cipherledger.core.logging import get_logger
from cipherledger.core.types import BytesLike, CiphertextHandle, to_bytes
from cipherledger.gateway.base import CiphertextGateway, register_gateway


def _hex(value: BytesLike) -> str:
    return "0x" + to_bytes(value).hex()


def _is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx responses; 4xx answers are final."""
    return isinstance(exc, GatewayError) and (exc.status_code is None or exc.is_server_error())


class RelayerGateway(CiphertextGateway):
    """
    Gateway backed by a remote relayer service.

    Example:
        >>> gateway = RelayerGateway("https://relayer.example.com/v1")
        >>> handle = await gateway.ingest(ciphertext, proof)
        >>> await gateway.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        retries: int = 3,
        retry_wait: float = 0.5,
    ) -> None:
        """
        Initialize relayer gateway.

        Args:
            base_url: Relayer API root (no trailing slash needed)
            timeout: Request timeout in seconds
            http_client: Shared httpx client (created lazily if None)
            retries: Attempts per request before giving up
            retry_wait: Base delay of the exponential backoff, in seconds
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None
        self._retries = retries
        self._retry_wait = retry_wait
        self._logger = get_logger("gateway.relayer")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if this gateway created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None

    async def _request(self, method: str, path: str, body: Any = None) -> httpx.Response:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            wait=wait_exponential(multiplier=self._retry_wait, max=8),
            stop=stop_after_attempt(self._retries),
            reraise=True,
            before_sleep=lambda state: self._logger.warning(
                f"Retrying {method} {path} (attempt {state.attempt_number}): {state.outcome.exception()}"
            ),
        ):
            with attempt:
                return await self._send(method, path, body)

    async def _send(self, method: str, path: str, body: Any = None) -> httpx.Response:
        client = await self._get_client()
        url = f"{self._base_url}{path}"
        self._logger.debug(f"{method} {url}")
        try:
            response = await client.request(method, url, json=body)
        except httpx.TimeoutException as e:
            raise GatewayError(f"Relayer request timed out: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Relayer request failed: {e}", url=url) from e

        if response.status_code >= 500:
            raise GatewayError(
                f"Relayer returned {response.status_code}",
                status_code=response.status_code,
                url=url,
                details={"body": response.text[:200]},
            )
        return response

    async def _json(self, method: str, path: str, body: Any = None) -> dict[str, Any]:
        response = await self._request(method, path, body)
        try:
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise GatewayError(
                f"Relayer rejected request: {response.status_code}",
                status_code=response.status_code,
                url=str(response.url),
            ) from e
        except ValueError as e:
            raise GatewayError("Relayer returned malformed JSON", url=str(response.url)) from e

    def _handle_from(self, data: dict[str, Any]) -> CiphertextHandle:
        try:
            return CiphertextHandle.from_hex(data["handle"])
        except (KeyError, TypeError, ValueError) as e:
            raise GatewayError(f"Relayer returned an invalid handle: {data!r}") from e

    async def ingest(self, ciphertext: BytesLike, proof: BytesLike) -> CiphertextHandle:
        try:
            body = {"ciphertext": _hex(ciphertext), "proof": _hex(proof)}
        except ValueError as e:
            raise InvalidCiphertextError(f"Ciphertext is not valid hex: {e}") from e

        response = await self._request("POST", "/inputs", body)
        if 400 <= response.status_code < 500:
            raise InvalidCiphertextError(
                "Relayer rejected ciphertext",
                details={"status_code": response.status_code, "reason": response.text[:200]},
            )
        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError("Relayer returned malformed JSON", url=str(response.url)) from e
        return self._handle_from(data)

    async def add(self, lhs: CiphertextHandle, rhs: CiphertextHandle) -> CiphertextHandle:
        data = await self._json("POST", "/ops/add", {"lhs": lhs.hex(), "rhs": rhs.hex()})
        return self._handle_from(data)

    async def subtract(self, lhs: CiphertextHandle, rhs: CiphertextHandle) -> CiphertextHandle:
        data = await self._json("POST", "/ops/sub", {"lhs": lhs.hex(), "rhs": rhs.hex()})
        return self._handle_from(data)

    async def zero(self) -> CiphertextHandle:
        return self._handle_from(await self._json("GET", "/ops/zero"))

    async def grant_public_decryption(self, handle: CiphertextHandle) -> None:
        data = await self._json("POST", "/acl/public", {"handle": handle.hex()})
        if not data.get("granted", False):
            raise GatewayError(f"Relayer refused public decryption grant for {handle.short()}")

    async def is_publicly_decryptable(self, handle: CiphertextHandle) -> bool:
        data = await self._json("GET", f"/acl/public/{handle.hex()}")
        return bool(data.get("public", False))

    async def verify_proof(
        self,
        handle: CiphertextHandle,
        cleartext: bytes,
        proof: BytesLike,
    ) -> bool:
        try:
            body = {"handle": handle.hex(), "cleartext": _hex(cleartext), "proof": _hex(proof)}
        except ValueError:
            return False
        data = await self._json("POST", "/decryption/verify", body)
        return bool(data.get("valid", False))

    async def health_check(self) -> bool:
        try:
            response = await self._request("GET", "/health")
        except GatewayError:
            return False
        return response.status_code == 200


register_gateway("relayer", RelayerGateway)
