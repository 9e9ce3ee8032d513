import asyncio
import base64
import itertools
import logging
import time
import httpx

logger = logging.getLogger(__name__)

SUI_COIN_TYPE = "0x2::sui::SUI"


class LedgerError(Exception):
    """The fullnode could not be reached or rejected a request."""


class LedgerTimeout(LedgerError):
    pass


class SuiClient:
    """Minimal async client for the Sui fullnode JSON-RPC API."""

    def __init__(self, url: str, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def _request(self, method: str, params: list):
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.url, json=payload)
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LedgerError(f"{method} failed: {e}") from e

        if data.get("error"):
            err = data["error"]
            raise LedgerError(f"{method} failed: {err.get('message', err)}")
        return data.get("result")

    async def get_coins(self, owner: str, coin_type: str = SUI_COIN_TYPE) -> list[dict]:
        result = await self._request("suix_getCoins", [owner, coin_type, None, None])
        return (result or {}).get("data", [])

    async def move_call(
        self,
        signer: str,
        package_id: str,
        module: str,
        function: str,
        arguments: list,
        gas: str,
        gas_budget: int,
        type_arguments: list | None = None,
    ) -> bytes:
        """Builds an unsigned Move call; returns the BCS transaction bytes."""
        result = await self._request(
            "unsafe_moveCall",
            [signer, package_id, module, function, type_arguments or [], arguments, gas, str(gas_budget)],
        )
        try:
            return base64.b64decode(result["txBytes"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerError("unsafe_moveCall returned no transaction bytes") from e

    async def execute_transaction(self, tx_bytes: bytes, signature: str) -> dict:
        return await self._request(
            "sui_executeTransactionBlock",
            [base64.b64encode(tx_bytes).decode("ascii"), [signature], {"showEffects": True}],
        )

    async def get_transaction(self, digest: str) -> dict | None:
        try:
            return await self._request("sui_getTransactionBlock", [digest, {"showEffects": True}])
        except LedgerError as e:
            if "Could not find" in str(e):
                return None
            raise

    async def wait_for_transaction(self, digest: str, timeout: float, poll_interval: float = 1.0) -> dict:
        deadline = time.monotonic() + timeout
        while True:
            tx = await self.get_transaction(digest)
            if tx is not None:
                return tx
            if time.monotonic() >= deadline:
                raise LedgerTimeout(f"transaction {digest} not confirmed after {timeout}s")
            logger.debug("waiting for %s", digest)
            await asyncio.sleep(poll_interval)


def execution_succeeded(tx: dict) -> bool:
    status = ((tx or {}).get("effects") or {}).get("status") or {}
    return status.get("status") == "success"
