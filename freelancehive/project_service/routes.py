from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional

from freelancehive.database import get_db
from freelancehive.events import publish_event
from freelancehive.schemas import MessageResponse
from freelancehive.auth_service.auth import get_current_user, require_client, require_freelancer, is_admin
from freelancehive.auth_service.models import User
from freelancehive.project_service.models import Job, JobStatus
from freelancehive.project_service.schemas import (
    JobCreate, JobUpdate, JobResponse, JobEnvelope, JobListResponse, AttachmentCreate,
    ApplicationCreate, ApplicationUpdate, ApplicationResponse, ApplicationEnvelope, ApplicationListResponse,
)
from freelancehive.project_service.crud import (
    list_jobs, get_job, get_jobs_by_client, count_applications, create_job, update_job,
    record_job_view, delete_job, add_attachment, remove_attachment,
    get_application, get_application_for, create_application, get_applications_by_freelancer,
    get_applications_by_job, update_application, delete_application,
)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])
applications_router = APIRouter(prefix="/api/applications", tags=["applications"])


def serialize_job(job: Job, db: Session) -> dict:
    job_dict = JobResponse.model_validate(job).model_dump()
    job_dict["skills"] = job.skills or []
    job_dict["attachments"] = job.attachments or []
    job_dict["applications_count"] = count_applications(db, job.id)
    return job_dict


def load_owned_job(db: Session, job_id: int, current_user: User) -> Job:
    job = get_job(db, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.client_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to modify this job")
    return job


@router.get("", response_model=JobListResponse)
def get_jobs_endpoint(
    status_filter: Optional[JobStatus] = Query(None, alias="status"),
    location: Optional[str] = None,
    min_budget: Optional[float] = Query(None, alias="minBudget"),
    max_budget: Optional[float] = Query(None, alias="maxBudget"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    jobs = list_jobs(
        db,
        status=status_filter.value if status_filter else None,
        location=location,
        min_budget=min_budget,
        max_budget=max_budget,
        search=search,
    )
    return {"jobs": [serialize_job(job, db) for job in jobs]}


@router.get("/my/jobs", response_model=JobListResponse)
def get_my_jobs_endpoint(db: Session = Depends(get_db), current_user: User = Depends(require_client)):
    return {"jobs": [serialize_job(job, db) for job in get_jobs_by_client(db, current_user.id)]}


@router.get("/{job_id}", response_model=JobEnvelope)
def get_job_endpoint(job_id: int, db: Session = Depends(get_db)):
    job = get_job(db, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    job = record_job_view(db, job)
    return {"job": serialize_job(job, db)}


@router.post("", response_model=JobEnvelope, status_code=status.HTTP_201_CREATED)
def create_job_endpoint(
    payload: JobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_client),
):
    job = create_job(db, current_user.id, **payload.model_dump())
    publish_event("job.created", {"job_id": job.id, "client_id": current_user.id})
    return {"job": serialize_job(job, db), "message": "Job created successfully"}


@router.put("/{job_id}", response_model=JobEnvelope)
def update_job_endpoint(
    job_id: int,
    payload: JobUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_client),
):
    job = load_owned_job(db, job_id, current_user)
    job = update_job(db, job, **payload.model_dump(exclude_unset=True))
    return {"job": serialize_job(job, db), "message": "Job updated successfully"}


@router.delete("/{job_id}", response_model=MessageResponse)
def delete_job_endpoint(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_client),
):
    job = load_owned_job(db, job_id, current_user)
    delete_job(db, job)
    return {"message": "Job deleted successfully"}


@router.post("/{job_id}/attachments", status_code=status.HTTP_201_CREATED)
def add_job_attachment_endpoint(
    job_id: int,
    payload: AttachmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    job = load_owned_job(db, job_id, current_user)
    attachment = add_attachment(db, job, payload.model_dump(by_alias=True, exclude_none=True))
    return {"attachment": attachment, "attachments": job.attachments}


@router.delete("/{job_id}/attachments/{file_id}")
def remove_job_attachment_endpoint(
    job_id: int,
    file_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    job = load_owned_job(db, job_id, current_user)
    if not remove_attachment(db, job, file_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    return {"attachments": job.attachments, "message": "Attachment removed"}


# ------- Applications -------
@applications_router.post("", response_model=ApplicationEnvelope, status_code=status.HTTP_201_CREATED)
def create_application_endpoint(
    payload: ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_freelancer),
):
    job = get_job(db, payload.job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.status != JobStatus.OPEN.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Job is not accepting applications")
    if get_application_for(db, job.id, current_user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already applied to this job")

    try:
        application = create_application(
            db,
            job.id,
            current_user.id,
            cover_letter=payload.cover_letter,
            proposed_rate=payload.proposed_rate,
        )
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already applied to this job")

    publish_event("application.created", {"application_id": application.id, "job_id": job.id})
    return {"application": ApplicationResponse.model_validate(application), "message": "Application submitted successfully"}


@applications_router.get("/my-applications", response_model=ApplicationListResponse)
def get_my_applications_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_freelancer),
):
    return {"applications": [ApplicationResponse.model_validate(a) for a in get_applications_by_freelancer(db, current_user.id)]}


@applications_router.get("/job/{job_id}", response_model=ApplicationListResponse)
def get_job_applications_endpoint(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    job = get_job(db, job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.client_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view these applications")
    return {"applications": [ApplicationResponse.model_validate(a) for a in get_applications_by_job(db, job_id)]}


@applications_router.put("/{application_id}", response_model=ApplicationEnvelope)
def update_application_endpoint(
    application_id: int,
    payload: ApplicationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    application = get_application(db, application_id)
    if not application:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")

    as_applicant = application.freelancer_id == current_user.id
    as_reviewer = application.job.client_id == current_user.id or is_admin(current_user)
    if not as_applicant and not as_reviewer:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this application")

    application = update_application(
        db,
        application,
        as_applicant=as_applicant,
        as_reviewer=as_reviewer,
        status=payload.status,
        cover_letter=payload.cover_letter,
        proposed_rate=payload.proposed_rate,
    )
    return {"application": ApplicationResponse.model_validate(application), "message": "Application updated successfully"}


@applications_router.delete("/{application_id}", response_model=MessageResponse)
def delete_application_endpoint(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    application = get_application(db, application_id)
    if not application:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    if application.freelancer_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this application")
    delete_application(db, application)
    return {"message": "Application deleted successfully"}
