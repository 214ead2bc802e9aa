"""Client for the off-chain proof service that publishes per-address allocations."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

import requests
from pydantic import BaseModel, ValidationError, field_validator
from solders.pubkey import Pubkey

from airdrop_claimer.errors import (
    MalformedProofError,
    NotEligibleError,
    ServiceFailureError,
    TransportError,
)

logger = logging.getLogger(__name__)

U64_MAX = 2**64 - 1
HASH_LEN = 32
DEFAULT_TIMEOUT = 15.0
HEX_NODE = re.compile(r"[0-9a-fA-F]{64}")
DECIMAL = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class AllocationProof:
    index: int
    amount: int
    proof: Tuple[str, ...]


def decode_proof_entry(entry: str) -> bytes:
    """Decode one hex proof node; raises ValueError unless it is exactly 32 bytes."""
    if not HEX_NODE.fullmatch(entry):
        raise ValueError(f"proof entry {entry!r} is not {HASH_LEN * 2} hex characters")
    return bytes.fromhex(entry)


def _check_u64(value: int) -> int:
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{value} does not fit in a u64")
    return value


class ProofResponse(BaseModel):
    index: int
    amount: int
    proof: List[str]

    @field_validator("index", mode="before")
    @classmethod
    def check_index(cls, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("index must be an integer")
        return _check_u64(value)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError("amount must be an integer or a decimal string")
        if isinstance(value, str):
            if not DECIMAL.fullmatch(value):
                raise ValueError(f"amount {value!r} is not a decimal integer")
            value = int(value)
        return _check_u64(value)

    @field_validator("proof")
    @classmethod
    def check_proof(cls, value):
        for entry in value:
            decode_proof_entry(entry)
        return value

    def to_allocation(self) -> AllocationProof:
        return AllocationProof(index=self.index, amount=self.amount, proof=tuple(self.proof))


def proof_url(base_url: str, claimant: Pubkey) -> str:
    return f"{base_url.rstrip('/')}/{claimant}.json"


def fetch_proof(
    base_url: str,
    claimant: Pubkey,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> AllocationProof:
    url = proof_url(base_url, claimant)
    http = session or requests
    try:
        resp = http.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("proof_fetch_failed url=%s error=%s", url, exc)
        raise TransportError(f"Could not reach proof service at {url}: {exc}") from exc

    if resp.status_code == 404:
        logger.info("proof_not_found claimant=%s", claimant)
        raise NotEligibleError(claimant)
    if resp.status_code != 200:
        logger.warning("proof_service_error url=%s status=%s", url, resp.status_code)
        raise ServiceFailureError(resp.status_code, resp.text[:200])

    try:
        payload = resp.json()
    except ValueError as exc:
        raise MalformedProofError(f"Proof service returned invalid JSON: {exc}") from exc
    try:
        proof = ProofResponse.model_validate(payload).to_allocation()
    except ValidationError as exc:
        raise MalformedProofError(f"Proof service returned a malformed proof: {exc}") from exc
    logger.info(
        "proof_found claimant=%s index=%s amount=%s depth=%s",
        claimant,
        proof.index,
        proof.amount,
        len(proof.proof),
    )
    return proof
