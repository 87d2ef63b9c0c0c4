from pydantic import Field
from typing import List, Optional, Any, Dict
from datetime import datetime

from freelancehive.schemas import CamelModel
from freelancehive.contract_service.models import ContractStatus


class ContractCreate(CamelModel):
    job_id: int
    freelancer_id: Optional[int] = None
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    terms: Optional[str] = None
    payment_terms: Optional[str] = None
    deadline: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)


class ContractUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    terms: Optional[str] = None
    payment_terms: Optional[str] = None
    deadline: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)
    status: Optional[ContractStatus] = None
    freelancer_id: Optional[int] = None


class SignContractRequest(CamelModel):
    signature_data: Optional[str] = None


class ContractResponse(CamelModel):
    id: int
    contract_number: str
    job_id: int
    client_id: int
    freelancer_id: Optional[int] = None
    title: str
    content: str
    terms: Optional[str] = None
    payment_terms: Optional[str] = None
    deadline: Optional[datetime] = None
    total_amount: Optional[float] = None
    status: str
    client_signature_date: Optional[datetime] = None
    client_signature_data: Optional[str] = None
    freelancer_signature_date: Optional[datetime] = None
    freelancer_signature_data: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContractEnvelope(CamelModel):
    contract: ContractResponse
    message: Optional[str] = None


class ContractListResponse(CamelModel):
    contracts: List[ContractResponse]
