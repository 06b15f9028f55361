"""EVM signer/submitter used by the submission stage."""

from __future__ import annotations

import logging
from typing import Any, Optional

from eth_account import Account
from eth_account.datastructures import SignedTransaction
from web3 import AsyncWeb3

from .errors import StartupError
from .pipeline.types import TransactionRequest

log = logging.getLogger(__name__)


def load_account(private_key: str):
    """Return a local account for ``private_key`` (``0x`` prefix optional)."""

    key = private_key.strip()
    if not key.lower().startswith("0x"):
        key = "0x" + key
    try:
        return Account.from_key(key)
    except Exception as exc:
        # never echo the key material
        raise StartupError("invalid private key") from exc


class Wallet:
    """Sign and broadcast legacy (EIP-155) transactions from one local account.

    Only the submission stage talks to the wallet, one transaction at a time,
    so the pending nonce read in :meth:`build_and_sign` is never shared.
    """

    def __init__(
        self,
        private_key: str,
        rpc_url: str,
        *,
        web3: Optional[AsyncWeb3] = None,
    ) -> None:
        self._account = load_account(private_key)
        self.rpc_url = rpc_url
        self.w3 = web3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._chain_id: Optional[int] = None

    @property
    def address(self) -> str:
        return self._account.address

    async def connect(self) -> None:
        """Verify the RPC endpoint answers and cache its chain id."""
        try:
            connected = await self.w3.is_connected()
            if not connected:
                raise StartupError(f"RPC endpoint {self.rpc_url} is not reachable")
            self._chain_id = int(await self.w3.eth.chain_id)
        except StartupError:
            raise
        except Exception as exc:
            raise StartupError(f"RPC endpoint {self.rpc_url} failed: {exc}") from exc
        log.info("Wallet %s connected (chain_id=%d)", self.address, self._chain_id)

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self.w3.eth.chain_id)
        return self._chain_id

    async def pending_nonce(self) -> int:
        return int(await self.w3.eth.get_transaction_count(self.address, "pending"))

    async def estimate_gas_price(self) -> int:
        return int(await self.w3.eth.gas_price)

    async def build_and_sign(self, request: TransactionRequest) -> SignedTransaction:
        """Attach the pending nonce and chain id to ``request`` and sign it."""

        nonce = await self.pending_nonce()
        chain_id = await self.chain_id()
        tx: dict[str, Any] = {
            "nonce": nonce,
            "to": request.to,
            "value": request.value,
            "gas": request.gas_limit,
            "gasPrice": request.gas_price,
            "data": request.data,
            "chainId": chain_id,
        }
        signed = self._account.sign_transaction(tx)
        log.debug("Signed transaction nonce=%d to=%s", nonce, request.to)
        return signed

    async def broadcast(self, signed: SignedTransaction) -> str:
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return AsyncWeb3.to_hex(tx_hash)
