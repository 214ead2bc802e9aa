"""Shared fakes: an in-memory ledger, a deterministic signer and a canned proof service."""
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

import pytest
import requests
from solders.account import Account
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import ID as SYS_PROGRAM_ID

from airdrop_claimer.config import MERKLE_DISTRIBUTOR_PROGRAM_ID
from airdrop_claimer.errors import AccountNotFoundError, LedgerError, SubmitError

PROOF_NODE = "ab" * 32
FAKE_SIGNATURE = str(Signature(bytes([9] * 64)))


class FakeLedger:
    def __init__(self, existing: Optional[Set[Pubkey]] = None, broken: Optional[Set[Pubkey]] = None):
        self.existing: Set[Pubkey] = set(existing or ())
        self.broken: Set[Pubkey] = set(broken or ())
        self.reads: List[Pubkey] = []
        self.submitted: List[tuple] = []
        self.submit_error: Optional[SubmitError] = None

    def get_account(self, address: Pubkey) -> Account:
        self.reads.append(address)
        if address in self.broken:
            raise LedgerError("node unreachable")
        if address not in self.existing:
            raise AccountNotFoundError(address)
        return Account(lamports=1_000_000, data=b"", owner=SYS_PROGRAM_ID)

    def submit(self, instructions, fee_payer, signers) -> str:
        self.submitted.append((list(instructions), fee_payer, list(signers)))
        if self.submit_error is not None:
            raise self.submit_error
        return FAKE_SIGNATURE


class FakeSigner:
    """Signs with a hash of the message so signatures are stable across runs."""

    def __init__(self, seed: int = 1):
        self._pubkey = Keypair.from_seed(bytes([seed] * 32)).pubkey()
        self.signed: List[bytes] = []

    def pubkey(self) -> Pubkey:
        return self._pubkey

    def sign_message(self, message: bytes) -> Signature:
        self.signed.append(message)
        return Signature(hashlib.sha512(bytes(self._pubkey) + message).digest())


@dataclass
class FakeResponse:
    status_code: int
    body: Any = None
    raw: Optional[str] = None

    @property
    def text(self) -> str:
        if self.raw is not None:
            return self.raw
        return json.dumps(self.body)

    def json(self):
        if self.raw is not None:
            return json.loads(self.raw)
        return self.body


@dataclass
class FakeSession:
    response: Optional[FakeResponse] = None
    error: Optional[Exception] = None
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def get(self, url, timeout=None):
        self.calls.append({"url": url, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def program_id() -> Pubkey:
    return Pubkey.from_string(MERKLE_DISTRIBUTOR_PROGRAM_ID)


@pytest.fixture
def distributor() -> Pubkey:
    return Pubkey(bytes([1] * 32))


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey(bytes([2] * 32))


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def proof_body() -> Dict[str, Any]:
    return {"index": 5, "amount": "2000000", "proof": [PROOF_NODE]}


@pytest.fixture
def found_session(proof_body) -> FakeSession:
    return FakeSession(response=FakeResponse(200, proof_body))


@pytest.fixture
def missing_session() -> FakeSession:
    return FakeSession(response=FakeResponse(404, raw="Not Found"))


@pytest.fixture
def transport_error_session() -> FakeSession:
    return FakeSession(error=requests.ConnectionError("connection refused"))
