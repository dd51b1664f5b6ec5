"""
Solana JSON-RPC client — the ledger boundary consumed by the analysis engine.

Async httpx client for getSignaturesForAddress and getTransaction (single
and JSON-RPC batch). Throttling surfaces as RateLimitedError; every other
transport, HTTP or RPC failure as UpstreamUnavailableError. No retry logic
lives here: backoff policy belongs to the fetcher.
"""

from __future__ import annotations

import itertools
from typing import Any, Protocol, Sequence

import httpx

from backend_bubbles.analysis_engine.errors import RateLimitedError, UpstreamUnavailableError
from backend_bubbles.bubbles_logging import get_logger
from backend_bubbles.config.env import mask_rpc_url
from backend_bubbles.ledger.models import SignatureInfo, TransactionRecord
from backend_bubbles.ledger.parser import parse_record

logger = get_logger(__name__)

RATE_LIMIT_CODES = frozenset({429, -32429})
DEFAULT_COMMITMENT = "confirmed"


class LedgerClientProtocol(Protocol):
    """What the fetcher needs from a ledger client."""

    async def list_recent_signatures(self, address: str, limit: int) -> list[SignatureInfo]: ...

    async def get_record(self, signature: str) -> TransactionRecord | None: ...

    async def get_records(self, signatures: Sequence[str]) -> list[TransactionRecord | None]: ...


def _is_rate_limit_message(message: str) -> bool:
    return "429" in message or "too many requests" in message.lower()


def _raise_for_rpc_error(err: Any) -> None:
    """Map a JSON-RPC error object to the error taxonomy."""
    if isinstance(err, dict):
        code = err.get("code")
        message = str(err.get("message", err))
    else:
        code = None
        message = str(err)
    if code in RATE_LIMIT_CODES or _is_rate_limit_message(message):
        raise RateLimitedError(f"Solana RPC rate limited: {message}")
    raise UpstreamUnavailableError(f"Solana RPC error: {message} (code={code})")


def _transaction_params(signature: str) -> list[Any]:
    return [
        signature,
        {
            "encoding": "jsonParsed",
            "maxSupportedTransactionVersion": 0,
            "commitment": DEFAULT_COMMITMENT,
        },
    ]


class LedgerClient:
    """
    Async Solana JSON-RPC client.

    Use as an async context manager, or call aclose() when done. An
    httpx.AsyncClient can be injected (tests pass one with a MockTransport).
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        request_timeout_sec: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout_sec)
        )
        self._ids = itertools.count(1)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def __aenter__(self) -> "LedgerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _body(self, method: str, params: list[Any]) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

    async def _post(self, payload: Any) -> Any:
        """POST a JSON-RPC payload; raise RateLimitedError / UpstreamUnavailableError."""
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(
                f"Request to {mask_rpc_url(self._rpc_url)} failed: {e}"
            ) from e
        if resp.status_code == 429:
            raise RateLimitedError("429 Too Many Requests")
        try:
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailableError(f"HTTP {resp.status_code} from RPC") from e
        except ValueError as e:
            raise UpstreamUnavailableError("RPC returned invalid JSON") from e

    async def _call(self, method: str, params: list[Any]) -> Any:
        data = await self._post(self._body(method, params))
        if not isinstance(data, dict):
            raise UpstreamUnavailableError(f"Unexpected RPC response for {method}")
        if data.get("error"):
            _raise_for_rpc_error(data["error"])
        return data.get("result")

    async def list_recent_signatures(self, address: str, limit: int) -> list[SignatureInfo]:
        """getSignaturesForAddress, newest first."""
        result = await self._call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": DEFAULT_COMMITMENT}],
        )
        if result is None:
            raise UpstreamUnavailableError("Solana RPC returned no result")
        if not isinstance(result, list):
            raise UpstreamUnavailableError("Unexpected getSignaturesForAddress result")
        infos: list[SignatureInfo] = []
        for item in result:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("ledger_signature_item_invalid", error=str(e))
        return infos

    async def get_record(self, signature: str) -> TransactionRecord | None:
        result = await self._call("getTransaction", _transaction_params(signature))
        return parse_record(result, signature=signature)

    async def get_records(self, signatures: Sequence[str]) -> list[TransactionRecord | None]:
        """
        One JSON-RPC batch of getTransaction calls, aligned positionally with the input.

        A rate-limit error on any element raises RateLimitedError for the whole
        batch; other per-element errors yield None at that position.
        """
        if not signatures:
            return []
        bodies = [self._body("getTransaction", _transaction_params(s)) for s in signatures]
        data = await self._post(bodies)
        if isinstance(data, dict):
            # Some providers answer a batch with a single error object
            if data.get("error"):
                _raise_for_rpc_error(data["error"])
            raise UpstreamUnavailableError("RPC did not return a batch response")
        by_id: dict[Any, dict[str, Any]] = {
            item.get("id"): item for item in data or [] if isinstance(item, dict)
        }
        out: list[TransactionRecord | None] = []
        for body, sig in zip(bodies, signatures):
            item = by_id.get(body["id"])
            if item is None:
                out.append(None)
                continue
            err = item.get("error")
            if err:
                try:
                    _raise_for_rpc_error(err)
                except RateLimitedError:
                    raise
                except UpstreamUnavailableError as e:
                    logger.warning("ledger_batch_item_error", signature=sig[:16] + "...", error=str(e))
                    out.append(None)
                    continue
            out.append(parse_record(item.get("result"), signature=sig))
        return out
