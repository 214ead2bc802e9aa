from typing import Optional

from solders.pubkey import Pubkey


class AirdropClaimError(Exception):
    """Base for every error the claim flow reports to the user."""

    pass


class ConfigError(AirdropClaimError):
    pass


class KeypairError(AirdropClaimError):
    pass


class ClaimDecisionError(AirdropClaimError):
    """Raised when the eligibility check reaches a decision other than "eligible"."""

    pass


class NotEligibleError(ClaimDecisionError):
    """Raise if the proof service has no allocation for the claimant"""

    def __init__(self, claimant: Pubkey):
        self.claimant = claimant
        super().__init__(f"No airdrop available for {claimant}.")


class AlreadyClaimedError(ClaimDecisionError):
    """Raise if the claim-status account for the allocation already exists"""

    def __init__(self, claim_status: Pubkey):
        self.claim_status = claim_status
        super().__init__(f"Claim already made (claim status account {claim_status}).")


class MalformedProofError(ClaimDecisionError):
    pass


class ServiceFailureError(ClaimDecisionError):
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        detail = f": {body}" if body else ""
        super().__init__(f"Failed to fetch airdrop info: HTTP {status}{detail}")


class TransportError(ClaimDecisionError):
    pass


class LedgerUnavailableError(ClaimDecisionError):
    pass


class AssemblyError(AirdropClaimError):
    pass


class InvalidProofEncodingError(AssemblyError):
    pass


class LedgerError(Exception):
    """Failure reported by a ledger adapter while reading an account."""

    pass


class AccountNotFoundError(LedgerError):
    def __init__(self, address: Pubkey):
        self.address = address
        super().__init__(f"Account {address} not found")


class SubmitError(AirdropClaimError):
    """Signing or broadcast failure; ``message`` is the node's text, verbatim."""

    ALREADY_CLAIMED_MARKERS = ("already in use",)

    def __init__(self, message: str, signature: Optional[str] = None):
        self.message = message
        self.signature = signature
        super().__init__(message)

    @property
    def already_claimed(self) -> bool:
        text = self.message.lower()
        return any(marker in text for marker in self.ALREADY_CLAIMED_MARKERS)
