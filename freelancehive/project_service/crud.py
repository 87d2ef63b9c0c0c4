from sqlalchemy.orm import Session
from sqlalchemy import or_, func
from typing import Optional
from datetime import datetime
import logging
import uuid

from freelancehive.project_service.models import Job, JobApplication, JobStatus, ApplicationStatus

logger = logging.getLogger(__name__)


def list_jobs(
    db: Session,
    status: Optional[str] = None,
    location: Optional[str] = None,
    min_budget: Optional[float] = None,
    max_budget: Optional[float] = None,
    search: Optional[str] = None,
):
    query = db.query(Job)
    if status:
        query = query.filter(Job.status == status)
    if location:
        query = query.filter(Job.location.contains(location))
    if min_budget is not None:
        query = query.filter(Job.budget >= min_budget)
    if max_budget is not None:
        query = query.filter(Job.budget <= max_budget)
    if search:
        query = query.filter(or_(Job.title.contains(search), Job.description.contains(search)))
    return query.order_by(Job.created_at.desc(), Job.id.desc()).all()


def get_job(db: Session, job_id: int):
    return db.query(Job).filter(Job.id == job_id).first()


def get_jobs_by_client(db: Session, client_id: int):
    return db.query(Job).filter(Job.client_id == client_id).order_by(Job.created_at.desc(), Job.id.desc()).all()


def count_applications(db: Session, job_id: int) -> int:
    return db.query(func.count(JobApplication.id)).filter(JobApplication.job_id == job_id).scalar() or 0


def create_job(db: Session, client_id: int, **kwargs):
    job = Job(client_id=client_id, status=JobStatus.OPEN.value, **kwargs)
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info("Job %s created by client %s", job.id, client_id)
    return job


def update_job(db: Session, job: Job, **kwargs):
    for key, value in kwargs.items():
        if not hasattr(job, key):
            continue
        # attachments may be cleared explicitly
        if key == "attachments":
            setattr(job, key, value if value is not None else [])
        elif value is not None:
            setattr(job, key, value.value if isinstance(value, JobStatus) else value)
    db.commit()
    db.refresh(job)
    return job


def record_job_view(db: Session, job: Job):
    db.query(Job).filter(Job.id == job.id).update(
        {Job.view_count: Job.view_count + 1}, synchronize_session=False
    )
    db.commit()
    db.refresh(job)
    return job


def delete_job(db: Session, job: Job):
    db.delete(job)
    db.commit()


def add_attachment(db: Session, job: Job, descriptor: dict):
    attachment = dict(descriptor)
    if not attachment.get("fileId"):
        attachment["fileId"] = str(uuid.uuid4())
    # Reassign so the JSON column is flagged dirty
    job.attachments = list(job.attachments or []) + [attachment]
    db.commit()
    db.refresh(job)
    return attachment


def remove_attachment(db: Session, job: Job, file_id: str) -> bool:
    current = list(job.attachments or [])
    remaining = [att for att in current if att.get("fileId") != file_id]
    if len(remaining) == len(current):
        return False
    job.attachments = remaining
    db.commit()
    db.refresh(job)
    return True


# ------- Applications -------
def get_application(db: Session, application_id: int):
    return db.query(JobApplication).filter(JobApplication.id == application_id).first()


def get_application_for(db: Session, job_id: int, freelancer_id: int):
    return db.query(JobApplication).filter(
        JobApplication.job_id == job_id,
        JobApplication.freelancer_id == freelancer_id,
    ).first()


def create_application(db: Session, job_id: int, freelancer_id: int, **kwargs):
    application = JobApplication(
        job_id=job_id,
        freelancer_id=freelancer_id,
        status=ApplicationStatus.PENDING.value,
        **kwargs
    )
    db.add(application)
    db.commit()
    db.refresh(application)
    logger.info("Freelancer %s applied to job %s", freelancer_id, job_id)
    return application


def get_applications_by_freelancer(db: Session, freelancer_id: int):
    return db.query(JobApplication).filter(
        JobApplication.freelancer_id == freelancer_id
    ).order_by(JobApplication.submitted_at.desc(), JobApplication.id.desc()).all()


def get_applications_by_job(db: Session, job_id: int):
    return db.query(JobApplication).filter(
        JobApplication.job_id == job_id
    ).order_by(JobApplication.submitted_at.desc(), JobApplication.id.desc()).all()


def get_other_applications(db: Session, job_id: int, selected_freelancer_id: int):
    """Applications on a job except the selected freelancer's."""
    return db.query(JobApplication).filter(
        JobApplication.job_id == job_id,
        JobApplication.freelancer_id != selected_freelancer_id,
    ).order_by(JobApplication.id).all()


def update_application(
    db: Session,
    application: JobApplication,
    as_applicant: bool,
    as_reviewer: bool,
    status: Optional[ApplicationStatus] = None,
    cover_letter: Optional[str] = None,
    proposed_rate: Optional[float] = None,
):
    # Applicants may only edit their pitch while the application is pending
    if as_applicant and application.status == ApplicationStatus.PENDING.value:
        if cover_letter:
            application.cover_letter = cover_letter
        if proposed_rate:
            application.proposed_rate = proposed_rate

    if as_reviewer and status:
        application.status = status.value
        if status != ApplicationStatus.PENDING:
            application.reviewed_at = datetime.utcnow()

    db.commit()
    db.refresh(application)
    return application


def delete_application(db: Session, application: JobApplication):
    db.delete(application)
    db.commit()
