"""Ledger collaborators: account reads and transaction submission.

The claim flow only talks to the ``Ledger`` protocol so it can run against an
in-memory ledger in tests; ``RpcLedger`` is the production adapter over a
Solana JSON-RPC node.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.account import Account
from solders.instruction import Instruction
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.rpc.responses import SendTransactionResp
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from airdrop_claimer.errors import AccountNotFoundError, LedgerError, SubmitError

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """Anything that can sign message bytes on behalf of one pubkey (solders ``Keypair`` qualifies)."""

    def pubkey(self) -> Pubkey:
        ...

    def sign_message(self, message: bytes) -> Signature:
        ...


class Ledger(Protocol):
    def get_account(self, address: Pubkey) -> Account:
        """Return the account at ``address``; raise AccountNotFoundError if it does not exist."""
        ...

    def submit(self, instructions: Sequence[Instruction], fee_payer: Pubkey, signers: Sequence[Signer]) -> str:
        """Sign, send and confirm; return the transaction signature or raise SubmitError."""
        ...


def extract_sig(resp: SendTransactionResp | dict | str | None) -> str:
    if isinstance(resp, SendTransactionResp):
        return str(resp.value)
    if isinstance(resp, dict):
        return str(resp.get("result") or resp.get("value") or "")
    if resp is None:
        return ""
    return str(resp)


def sign_message_v0(message: MessageV0, signers: Sequence[Signer]) -> VersionedTransaction:
    """Collect one signature per required signer, in the order the message lists them."""
    by_key = {signer.pubkey(): signer for signer in signers}
    required = message.header.num_required_signatures
    payload = to_bytes_versioned(message)
    sigs = []
    for key in list(message.account_keys)[:required]:
        signer = by_key.get(key)
        if signer is None:
            raise SubmitError(f"Missing signer for required account {key}")
        sigs.append(signer.sign_message(payload))
    return VersionedTransaction.populate(message, sigs)


class RpcLedger:
    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_url(cls, rpc_url: str, timeout: float = 30) -> "RpcLedger":
        return cls(Client(rpc_url, commitment=Confirmed, timeout=timeout))

    def get_account(self, address: Pubkey) -> Account:
        try:
            resp = self.client.get_account_info(address, commitment=Confirmed)
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerError(f"RPC error fetching {address}: {exc}") from exc
        if resp.value is None:
            raise AccountNotFoundError(address)
        return resp.value

    def submit(self, instructions: Sequence[Instruction], fee_payer: Pubkey, signers: Sequence[Signer]) -> str:
        try:
            blockhash = self.client.get_latest_blockhash(commitment=Confirmed).value.blockhash
        except (SolanaRpcException, RPCException) as exc:
            raise SubmitError(f"Failed to fetch blockhash: {exc}") from exc
        try:
            message = MessageV0.try_compile(fee_payer, list(instructions), [], blockhash)
        except Exception as exc:  # noqa: BLE001
            raise SubmitError(f"Failed to compile transaction: {exc}") from exc
        tx = sign_message_v0(message, signers)

        try:
            resp = self.client.send_raw_transaction(
                bytes(tx),
                opts=TxOpts(skip_confirmation=True, skip_preflight=False, preflight_commitment=Confirmed),
            )
        except (SolanaRpcException, RPCException) as exc:
            raise SubmitError(str(exc)) from exc
        sig = extract_sig(resp)
        logger.info("claim_tx_sent sig=%s payer=%s", sig, fee_payer)

        try:
            status = self.client.confirm_transaction(Signature.from_string(sig), commitment=Confirmed).value
        except (SolanaRpcException, RPCException, UnconfirmedTxError) as exc:
            raise SubmitError(f"Transaction {sig} was not confirmed: {exc}", signature=sig) from exc
        if status and status[0] is not None and status[0].err is not None:
            raise SubmitError(f"Transaction {sig} failed: {status[0].err}", signature=sig)
        return sig
