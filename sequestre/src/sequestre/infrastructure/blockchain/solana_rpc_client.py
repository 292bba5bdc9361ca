"""
Solana RPC client with resilience patterns.

Features:
- Circuit Breaker (prevent cascading failures)
- Retry with exponential backoff (reads only)
- Timeout per HTTP call

Broadcasts are never retried: a resent transaction after an ambiguous
failure could land twice.
"""

import asyncio
import base64
from typing import Any, Dict, Optional

import aiohttp
from shared.reporter import SystemReporter
from shared.resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerOpenError,
    Retry,
    RetryConfig,
    RetryError,
)
from solders.hash import Hash  # type: ignore
from solders.pubkey import Pubkey  # type: ignore

from sequestre.config.settings import SequestreConfig, get_settings
from sequestre.domain.exceptions import RPCException, RPCTimeoutException
from sequestre.domain.services import ILedgerTransport
from sequestre.domain.value_objects import AccountInfo


class SolanaRPCClient(ILedgerTransport):
    """
    JSON-RPC 2.0 transport to a Solana node.

    Resilience features:
    - Circuit breaker around every call
    - Automatic retry with exponential backoff for reads
    - Timeout protection for all RPC calls
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        settings: Optional[SequestreConfig] = None,
        reporter: Optional[SystemReporter] = None,
    ):
        """
        Initialize Solana RPC client.

        Args:
            rpc_url: Optional RPC URL. If None, uses settings.
            settings: Optional configuration. If None, uses get_settings().
            reporter: Optional logger
        """
        self._settings = settings or get_settings()
        self.rpc_url = rpc_url or self._settings.rpc_url
        self.commitment = self._settings.commitment
        self.reporter = reporter or SystemReporter(name="solana_rpc")

        transient = (aiohttp.ClientError, asyncio.TimeoutError, RPCException)

        cb_config = self._settings.get_circuit_breaker_config("solana_rpc")
        self.circuit_breaker = CircuitBreaker(
            name="solana_rpc",
            config=CircuitBreakerConfig(
                failure_threshold=cb_config.failure_threshold,
                success_threshold=cb_config.success_threshold,
                timeout=cb_config.timeout,
                expected_exceptions=transient + (RetryError,),
            ),
        )

        retry_config = self._settings.get_retry_config("rpc_query")
        self.retry = Retry(
            name="rpc_query",
            config=RetryConfig(
                max_attempts=retry_config.max_attempts,
                initial_delay=retry_config.initial_delay,
                max_delay=retry_config.max_delay,
                exponential_base=retry_config.exponential_base,
                jitter=retry_config.jitter,
                retry_on=transient,
            ),
        )

        self.rpc_timeout = self._settings.resilience.timeouts.rpc_call

    async def call_rpc(
        self,
        method: str,
        params: Optional[list] = None,
        retry: bool = True,
    ) -> Any:
        """
        Call Solana RPC method with resilience.

        Args:
            method: RPC method name
            params: Optional method parameters
            retry: Retry transient failures (reads only)

        Returns:
            The ``result`` member of the RPC response

        Raises:
            RPCException: On RPC error, exhausted retries or open circuit
        """
        try:
            if retry:
                return await self.circuit_breaker.call_async(
                    self.retry.execute_async,
                    self._call_rpc_inner,
                    method,
                    params,
                )
            return await self.circuit_breaker.call_async(
                self._call_rpc_inner,
                method,
                params,
            )
        except RetryError as e:
            last = e.last_exception
            details = {"method": method, "attempts": e.attempts}
            if isinstance(last, RPCException):
                details.update(last.details)
            raise RPCException(
                f"RPC call failed after {e.attempts} attempts: {last}",
                details=details,
            ) from e
        except CircuitBreakerOpenError as e:
            raise RPCException(
                e.message,
                details={"method": method, "breaker": e.breaker_name},
            ) from e

    async def _call_rpc_inner(
        self,
        method: str,
        params: Optional[list] = None,
    ) -> Any:
        """Single RPC round trip."""
        if not self.rpc_url:
            raise RPCException("Solana RPC URL not configured")

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params or [],
        }

        try:
            data = await self._post(payload)
        except aiohttp.ClientError as e:
            raise RPCException(
                f"RPC connection error: {str(e)}",
                details={"method": method},
            ) from e
        except asyncio.TimeoutError as e:
            raise RPCTimeoutException(
                f"RPC timeout: {method}",
                details={"method": method, "timeout": self.rpc_timeout},
            ) from e

        if "error" in data:
            raise RPCException(
                f"RPC error: {data['error']}",
                details={"method": method, "error": data["error"]},
            )

        return data.get("result")

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST one JSON-RPC request and return the decoded body."""
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.rpc_timeout),
            ) as response:
                response.raise_for_status()
                return await response.json()

    # ================================================================
    # ILedgerTransport
    # ================================================================

    async def get_account_info(self, address: Pubkey) -> Optional[AccountInfo]:
        result = await self.call_rpc(
            "getAccountInfo",
            [
                str(address),
                {"encoding": "base64", "commitment": self.commitment},
            ],
        )
        value = (result or {}).get("value")
        if value is None:
            return None

        raw, encoding = value["data"]
        if encoding != "base64":
            raise RPCException(
                f"Unexpected account data encoding: {encoding}",
                details={"address": str(address)},
            )

        return AccountInfo(
            owner=Pubkey.from_string(value["owner"]),
            lamports=value["lamports"],
            data=base64.b64decode(raw),
            executable=value.get("executable", False),
        )

    async def get_latest_blockhash(self) -> Hash:
        result = await self.call_rpc(
            "getLatestBlockhash",
            [{"commitment": self.commitment}],
        )
        return Hash.from_string(result["value"]["blockhash"])

    async def get_minimum_balance_for_rent_exemption(self, space: int) -> int:
        result = await self.call_rpc(
            "getMinimumBalanceForRentExemption",
            [space, {"commitment": self.commitment}],
        )
        return int(result)

    async def send_raw_transaction(
        self,
        payload: bytes,
        skip_preflight: bool = False,
    ) -> str:
        encoded = base64.b64encode(payload).decode("ascii")
        self.reporter.debug(
            f"sendTransaction ({len(payload)} bytes, "
            f"skip_preflight={skip_preflight})",
            context="SolanaRPC",
        )
        return await self.call_rpc(
            "sendTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": self.commitment,
                },
            ],
            retry=False,
        )

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        return await self.call_rpc(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    async def get_balance(self, address: Pubkey) -> int:
        """
        Get account balance.

        Args:
            address: Account address

        Returns:
            Balance in lamports
        """
        result = await self.call_rpc(
            "getBalance",
            [str(address), {"commitment": self.commitment}],
        )
        return (result or {}).get("value", 0)
