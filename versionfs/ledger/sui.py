"""Sui fullnode transport over JSON-RPC."""

import base64
import itertools
import logging
from typing import Any, Protocol

import requests

from ..errors import LedgerUnavailable, TransactionRejected
from .transport import InspectResult, LedgerTransport, MoveCall

logger = logging.getLogger(__name__)

# Returned by sui_getTransactionBlock while the digest is not indexed yet.
_NOT_INDEXED_MARKERS = ("Could not find the referenced transaction", "not found")


class Wallet(Protocol):
    """Builds and signs transactions. Supplied by the caller's wallet layer."""

    @property
    def address(self) -> str: ...

    def build(self, call: MoveCall, *, inspect: bool = False) -> bytes:
        """Serialized transaction (or transaction kind when ``inspect``)."""
        ...

    def sign(self, tx_bytes: bytes) -> str:
        """Serialized signature of ``tx_bytes``, base64."""
        ...


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def normalize_effects(digest: str, block: dict) -> dict:
    """Flatten a ``SuiTransactionBlockResponse`` into the effects shape."""
    status = (block.get("effects") or {}).get("status") or {}
    return {
        "digest": block.get("digest", digest),
        "status": status.get("status", "failure"),
        "error": status.get("error"),
        "events": block.get("events") or [],
        "objectChanges": block.get("objectChanges") or [],
    }


def normalize_inspect(result: dict) -> InspectResult:
    """Convert a ``DevInspectResults`` payload into ``(bytes, tag)`` pairs."""
    if result.get("error"):
        return InspectResult(error=result["error"], aborted=True)
    status = (result.get("effects") or {}).get("status") or {}
    if status.get("status") == "failure":
        return InspectResult(
            error=status.get("error") or "execution failed", aborted=True
        )
    results = result.get("results") or []
    if not results:
        return InspectResult(error="No results returned")
    values = [
        (bytes(raw), tag) for raw, tag in results[0].get("returnValues") or []
    ]
    return InspectResult(values)


class SuiRpcTransport(LedgerTransport):
    """Talks to a Sui fullnode. Transaction bytes and signatures come from
    an injected ``Wallet``."""

    def __init__(
        self,
        rpc_url: str,
        wallet: Wallet,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.wallet = wallet
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    @property
    def sender(self) -> str:
        return self.wallet.address

    def _rpc(self, method: str, params: list[Any]) -> dict:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise LedgerUnavailable(f"{method} failed: {e}") from e
        if not response.ok:
            raise LedgerUnavailable(
                f"{method} failed: {response.status_code} - {response.text}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise LedgerUnavailable(f"{method} returned invalid JSON: {e}") from e

    def execute(self, call: MoveCall) -> str:
        tx_bytes = self.wallet.build(call)
        signature = self.wallet.sign(tx_bytes)
        body = self._rpc(
            "sui_executeTransactionBlock",
            [_b64(tx_bytes), [signature], {"showEffects": False}],
        )
        if "error" in body:
            raise TransactionRejected(body["error"].get("message", str(body["error"])))
        digest = body["result"]["digest"]
        logger.debug("Executed %s: %s", call.target, digest)
        return digest

    def effects(self, digest: str) -> dict | None:
        body = self._rpc(
            "sui_getTransactionBlock",
            [digest, {"showEffects": True, "showEvents": True, "showObjectChanges": True}],
        )
        if "error" in body:
            message = body["error"].get("message", "")
            if any(marker in message for marker in _NOT_INDEXED_MARKERS):
                return None
            raise LedgerUnavailable(f"sui_getTransactionBlock: {message}")
        block = body.get("result")
        if not block or "effects" not in block:
            return None
        return normalize_effects(digest, block)

    def inspect(self, call: MoveCall) -> InspectResult:
        tx_bytes = self.wallet.build(call, inspect=True)
        body = self._rpc(
            "sui_devInspectTransactionBlock", [self.sender, _b64(tx_bytes)]
        )
        if "error" in body:
            return InspectResult(error=body["error"].get("message", str(body["error"])))
        return normalize_inspect(body["result"])
