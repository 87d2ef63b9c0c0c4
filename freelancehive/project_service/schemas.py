from pydantic import Field
from typing import List, Optional, Any
from datetime import datetime

from freelancehive.schemas import CamelModel
from freelancehive.project_service.models import JobStatus, ApplicationStatus


# ------- Jobs -------
class JobCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    budget: Optional[float] = None
    hourly_rate: Optional[float] = None
    location: Optional[str] = None
    skills: List[str] = []
    deadline: Optional[datetime] = None
    attachments: List[dict] = []


class JobUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    budget: Optional[float] = None
    hourly_rate: Optional[float] = None
    location: Optional[str] = None
    skills: Optional[List[str]] = None
    status: Optional[JobStatus] = None
    deadline: Optional[datetime] = None
    attachments: Optional[List[dict]] = None


class JobResponse(CamelModel):
    id: int
    client_id: int
    title: str
    description: str
    budget: Optional[float] = None
    hourly_rate: Optional[float] = None
    location: Optional[str] = None
    skills: List[Any] = []
    deadline: Optional[datetime] = None
    attachments: List[dict] = []
    status: str
    view_count: int = 0
    applications_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobEnvelope(CamelModel):
    job: JobResponse
    message: Optional[str] = None


class JobListResponse(CamelModel):
    jobs: List[JobResponse]


class AttachmentCreate(CamelModel):
    file_id: Optional[str] = None
    file_name: str
    file_url: str
    file_path: Optional[str] = None
    file_size: Optional[int] = None


# ------- Applications -------
class ApplicationCreate(CamelModel):
    job_id: int
    cover_letter: Optional[str] = None
    proposed_rate: Optional[float] = None


class ApplicationUpdate(CamelModel):
    status: Optional[ApplicationStatus] = None
    cover_letter: Optional[str] = None
    proposed_rate: Optional[float] = None


class ApplicationResponse(CamelModel):
    id: int
    job_id: int
    freelancer_id: int
    cover_letter: Optional[str] = None
    proposed_rate: Optional[float] = None
    status: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class ApplicationEnvelope(CamelModel):
    application: ApplicationResponse
    message: Optional[str] = None


class ApplicationListResponse(CamelModel):
    applications: List[ApplicationResponse]
