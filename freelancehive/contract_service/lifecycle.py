"""
Contract status rules.

    draft  --send-->  sent
    sent   --edit-->  draft
    draft | sent  --second signature-->  active
    active  --complete-->  completed

Signatures are per party and write-once. The status only moves to
``active`` once both the client and the freelancer slot carry a date,
whichever party signs first.
"""

from datetime import datetime
from typing import Optional

from freelancehive.contract_service.models import Contract, ContractStatus

CLIENT = "client"
FREELANCER = "freelancer"

# Terms are frozen once both parties have signed
LOCKED_STATUSES = {ContractStatus.SIGNED, ContractStatus.ACTIVE, ContractStatus.COMPLETED}

MANUAL_TRANSITIONS = {
    ContractStatus.DRAFT: {ContractStatus.SENT},
    ContractStatus.SENT: {ContractStatus.DRAFT},
}


class ContractTransitionError(ValueError):
    pass


class AlreadySignedError(ContractTransitionError):
    pass


def _status(value) -> ContractStatus:
    return value if isinstance(value, ContractStatus) else ContractStatus(value)


def is_locked(contract: Contract) -> bool:
    return _status(contract.status) in LOCKED_STATUSES


def can_transition(current, target) -> bool:
    """Whether an edit may move the contract from `current` to `target`."""
    current, target = _status(current), _status(target)
    if current == target:
        return True
    return target in MANUAL_TRANSITIONS.get(current, set())


def party_for(contract: Contract, user_id: int) -> Optional[str]:
    if contract.client_id == user_id:
        return CLIENT
    if contract.freelancer_id is not None and contract.freelancer_id == user_id:
        return FREELANCER
    return None


def is_fully_signed(contract: Contract) -> bool:
    return contract.client_signature_date is not None and contract.freelancer_signature_date is not None


def apply_signature(contract: Contract, party: str, signature_data: Optional[str], now: Optional[datetime] = None) -> bool:
    """Record `party`'s signature on the contract.

    Returns True when this signature completed the pair and activated the
    contract. Raises AlreadySignedError, leaving the stored signature
    untouched, when the party has signed before.
    """
    now = now or datetime.utcnow()
    if party == CLIENT:
        if contract.client_signature_date is not None:
            raise AlreadySignedError("You have already signed this contract")
        contract.client_signature_date = now
        contract.client_signature_data = signature_data
    elif party == FREELANCER:
        if contract.freelancer_signature_date is not None:
            raise AlreadySignedError("You have already signed this contract")
        contract.freelancer_signature_date = now
        contract.freelancer_signature_data = signature_data
    else:
        raise ContractTransitionError(f"Unknown contract party: {party}")

    if is_fully_signed(contract):
        contract.status = ContractStatus.ACTIVE.value
        return True
    return False


def send(contract: Contract):
    if _status(contract.status) != ContractStatus.DRAFT:
        raise ContractTransitionError("Only draft contracts can be sent")
    contract.status = ContractStatus.SENT.value


def complete(contract: Contract):
    if _status(contract.status) != ContractStatus.ACTIVE:
        raise ContractTransitionError("Only active contracts can be completed")
    contract.status = ContractStatus.COMPLETED.value


def format_contract_number(year: int, sequence: int) -> str:
    return f"CONTRACT-{year}-{sequence:04d}"
