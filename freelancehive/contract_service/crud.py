from sqlalchemy.orm import Session
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import Optional
import logging

from freelancehive.contract_service.models import Contract, ContractStatus
from freelancehive.contract_service import lifecycle
from freelancehive.payments_service.schemas import escrow_payment_dict
from freelancehive.project_service.models import Job, JobStatus

logger = logging.getLogger(__name__)

CONTRACT_FIELDS = (
    "id", "contract_number", "job_id", "client_id", "freelancer_id", "title", "content",
    "terms", "payment_terms", "deadline", "total_amount", "status",
    "client_signature_date", "client_signature_data",
    "freelancer_signature_date", "freelancer_signature_data",
    "created_at", "updated_at",
)


class ContractNumberUnavailable(RuntimeError):
    pass


def serialize_contract(contract: Contract) -> dict:
    """Contract as returned by the API, escrow payments folded into `metadata`."""
    data = {field: getattr(contract, field) for field in CONTRACT_FIELDS}
    metadata = dict(contract.extra_metadata or {})
    metadata["payments"] = [escrow_payment_dict(payment) for payment in contract.payments]
    data["metadata"] = metadata
    return data


def get_contract(db: Session, contract_id: int, for_update: bool = False):
    query = db.query(Contract).filter(Contract.id == contract_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def list_contracts(db: Session, user_id: Optional[int] = None):
    """Contracts where `user_id` is a party, or every contract when `user_id` is None."""
    query = db.query(Contract)
    if user_id is not None:
        query = query.filter(or_(Contract.client_id == user_id, Contract.freelancer_id == user_id))
    return query.order_by(Contract.created_at.desc(), Contract.id.desc()).all()


def count_contracts(db: Session) -> int:
    return db.query(func.count(Contract.id)).scalar() or 0


def _is_number_collision(exc: IntegrityError) -> bool:
    # Unique index on contract_number; other violations (foreign keys) are real errors
    return "contract_number" in str(exc.orig)


def create_contract(db: Session, client_id: int, retries: int = 5, **kwargs):
    """Insert a draft contract numbered CONTRACT-<year>-<count+1>.

    The number is unique in the schema; if a concurrent insert took it we
    roll back and try the next one.
    """
    year = datetime.utcnow().year
    sequence = count_contracts(db) + 1
    for _ in range(max(retries, 1)):
        number = lifecycle.format_contract_number(year, sequence)
        contract = Contract(
            client_id=client_id,
            contract_number=number,
            status=ContractStatus.DRAFT.value,
            extra_metadata={},
            **kwargs
        )
        db.add(contract)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not _is_number_collision(exc):
                raise
            logger.warning("Contract number %s already taken, retrying", number)
            sequence += 1
            continue
        db.refresh(contract)
        logger.info("Contract %s (%s) created by %s", contract.id, contract.contract_number, client_id)
        return contract
    raise ContractNumberUnavailable("Could not allocate a contract number")


def update_contract(db: Session, contract: Contract, **kwargs):
    for key, value in kwargs.items():
        if not hasattr(contract, key):
            continue
        # freelancer_id may be cleared with an explicit null
        if value is None and key != "freelancer_id":
            continue
        setattr(contract, key, value.value if isinstance(value, ContractStatus) else value)
    db.commit()
    db.refresh(contract)
    return contract


def sign_contract(db: Session, contract: Contract, party: str, signature_data: Optional[str]) -> bool:
    """Record the signature; returns True when it activated the contract."""
    try:
        activated = lifecycle.apply_signature(contract, party, signature_data)
    except lifecycle.ContractTransitionError:
        db.rollback()
        raise
    db.commit()
    db.refresh(contract)
    logger.info("Contract %s signed by %s", contract.id, party)
    if activated:
        logger.info("Contract %s is now active", contract.id)
    return activated


def send_contract(db: Session, contract: Contract):
    lifecycle.send(contract)
    db.commit()
    db.refresh(contract)
    return contract


def complete_contract(db: Session, contract: Contract):
    lifecycle.complete(contract)
    job = db.query(Job).filter(Job.id == contract.job_id).first()
    if job:
        job.status = JobStatus.COMPLETED.value
    db.commit()
    db.refresh(contract)
    logger.info("Contract %s completed", contract.id)
    return contract
