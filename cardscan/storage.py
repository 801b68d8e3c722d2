"""
Relational storage for extraction jobs and the contacts they produced.

The upload route owns the transaction: it creates the job, runs the
pipeline, saves the contact and commits (or rolls back) once.
"""

import base64
import logging
from datetime import datetime, timezone
from typing import Dict, List

from flask_sqlalchemy import SQLAlchemy

from .normalizer import ContactRecord

logger = logging.getLogger(__name__)

db = SQLAlchemy()

DEFAULT_REQUEST_LABEL = "Gemini Vision Request"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AIJob(db.Model):
    """One upload submitted for extraction."""

    __tablename__ = "ai_jobs"

    id = db.Column(db.Integer, primary_key=True)
    image_base64 = db.Column(db.Text, nullable=False, comment="Original upload, base64")
    request = db.Column(db.String(255), nullable=False, default=DEFAULT_REQUEST_LABEL)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    contacts = db.relationship("CustomerContact", back_populates="job")


class CustomerContact(db.Model):
    """Contact extracted from a card, linked to its job."""

    __tablename__ = "customer_data"

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text, nullable=False)
    product_notes = db.Column(db.Text, nullable=False, comment="Email, website and title")
    photo_base64 = db.Column(db.Text, nullable=False, comment="Compressed image, base64")
    business_type = db.Column(db.String(255), nullable=False, comment="Company name")
    job_id = db.Column(db.Integer, db.ForeignKey("ai_jobs.id"), nullable=False)

    job = db.relationship("AIJob", back_populates="contacts")

    def to_dict(self) -> Dict:
        return {
            "job_id": self.job_id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "photo_base64": self.photo_base64,
            "business_type": self.business_type,
            "product_notes": self.product_notes,
        }


def product_notes(record: ContactRecord) -> str:
    """Pack the fields without a column of their own into one note."""
    return f"Email: {record.email} | Web: {record.website} | Title: {record.title}"


def create_job(image_bytes: bytes, request_label: str = DEFAULT_REQUEST_LABEL) -> AIJob:
    """Add a job row and flush so its id is available. Caller commits."""
    job = AIJob(
        image_base64=base64.b64encode(image_bytes).decode("ascii"),
        request=request_label
    )
    db.session.add(job)
    db.session.flush()
    logger.info(f"Created job {job.id}")
    return job


def save_contact(job: AIJob, record: ContactRecord, photo_bytes: bytes) -> CustomerContact:
    """Add the extracted contact for a job. Caller commits."""
    contact = CustomerContact(
        phone=record.phone,
        name=record.name,
        address=record.address,
        product_notes=product_notes(record),
        photo_base64=base64.b64encode(photo_bytes).decode("ascii"),
        business_type=record.company,
        job=job
    )
    db.session.add(contact)
    db.session.flush()
    return contact


def list_archive() -> List[Dict]:
    """All stored contacts, newest first."""
    contacts = db.session.execute(
        db.select(CustomerContact).order_by(CustomerContact.id.desc())
    ).scalars()
    return [c.to_dict() for c in contacts]
