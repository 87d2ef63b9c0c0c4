from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from freelancehive.config import Settings, get_settings
from freelancehive.database import get_db
from freelancehive.events import publish_event
from freelancehive.auth_service.auth import get_current_user, is_admin
from freelancehive.auth_service.crud import get_user_by_id
from freelancehive.auth_service.models import User
from freelancehive.project_service.crud import get_job
from freelancehive.contract_service import lifecycle
from freelancehive.contract_service.models import Contract
from freelancehive.contract_service.schemas import (
    ContractCreate, ContractUpdate, SignContractRequest, ContractEnvelope, ContractListResponse,
)
from freelancehive.contract_service.crud import (
    serialize_contract, get_contract, list_contracts, create_contract, update_contract,
    sign_contract, send_contract, complete_contract,
)

router = APIRouter(prefix="/api/contracts", tags=["contracts"])


def load_contract(db: Session, contract_id: int, for_update: bool = False) -> Contract:
    contract = get_contract(db, contract_id, for_update=for_update)
    if not contract:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found")
    return contract


def check_freelancer(db: Session, freelancer_id, client_id: int):
    if freelancer_id is None:
        return
    if freelancer_id == client_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Client and freelancer must be different users")
    if not get_user_by_id(db, freelancer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Freelancer not found")


def ensure_party_or_admin(contract: Contract, current_user: User):
    if lifecycle.party_for(contract, current_user.id) is None and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this contract")


@router.get("", response_model=ContractListResponse)
def get_contracts_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    user_id = None if is_admin(current_user) else current_user.id
    return {"contracts": [serialize_contract(c) for c in list_contracts(db, user_id)]}


@router.get("/my-contracts", response_model=ContractListResponse)
def get_my_contracts_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_contracts_endpoint(db=db, current_user=current_user)


@router.get("/{contract_id}", response_model=ContractEnvelope)
def get_contract_endpoint(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = load_contract(db, contract_id)
    ensure_party_or_admin(contract, current_user)
    return {"contract": serialize_contract(contract)}


@router.post("", response_model=ContractEnvelope, status_code=status.HTTP_201_CREATED)
def create_contract_endpoint(
    payload: ContractCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    job = get_job(db, payload.job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.client_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to create a contract for this job")
    check_freelancer(db, payload.freelancer_id, current_user.id)

    contract = create_contract(
        db,
        current_user.id,
        retries=settings.contract_number_retries,
        **payload.model_dump()
    )
    publish_event("contract.created", {"contract_id": contract.id, "job_id": job.id})
    return {"contract": serialize_contract(contract), "message": "Contract created successfully"}


@router.put("/{contract_id}", response_model=ContractEnvelope)
def update_contract_endpoint(
    contract_id: int,
    payload: ContractUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = load_contract(db, contract_id)
    if contract.client_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this contract")
    if lifecycle.is_locked(contract):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot update a signed or active contract")
    if payload.status is not None and not lifecycle.can_transition(contract.status, payload.status):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change contract status from {contract.status} to {payload.status.value}",
        )
    if "freelancer_id" in payload.model_fields_set:
        check_freelancer(db, payload.freelancer_id, contract.client_id)

    contract = update_contract(db, contract, **payload.model_dump(exclude_unset=True))
    return {"contract": serialize_contract(contract), "message": "Contract updated successfully"}


@router.post("/{contract_id}/send", response_model=ContractEnvelope)
def send_contract_endpoint(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = load_contract(db, contract_id)
    if contract.client_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the client can send this contract")
    try:
        contract = send_contract(db, contract)
    except lifecycle.ContractTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    publish_event("contract.sent", {"contract_id": contract.id, "freelancer_id": contract.freelancer_id})
    return {"contract": serialize_contract(contract), "message": "Contract sent successfully"}


@router.post("/{contract_id}/sign", response_model=ContractEnvelope)
def sign_contract_endpoint(
    contract_id: int,
    payload: SignContractRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = load_contract(db, contract_id, for_update=True)
    party = lifecycle.party_for(contract, current_user.id)
    if party is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to sign this contract")

    try:
        activated = sign_contract(db, contract, party, payload.signature_data)
    except lifecycle.ContractTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    publish_event("contract.signed", {"contract_id": contract.id, "party": party})
    if activated:
        publish_event("contract.activated", {"contract_id": contract.id})
    return {"contract": serialize_contract(contract), "message": "Contract signed successfully"}


@router.post("/{contract_id}/complete", response_model=ContractEnvelope)
def complete_contract_endpoint(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = load_contract(db, contract_id)
    if contract.client_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to complete this contract")
    try:
        contract = complete_contract(db, contract)
    except lifecycle.ContractTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    publish_event("contract.completed", {"contract_id": contract.id, "job_id": contract.job_id})
    return {"contract": serialize_contract(contract), "message": "Contract completed successfully"}
