"""Design request model.

- DesignRequest: one brief submitted by an internal requester, mirrored
  one-way onto a Trello card once sync succeeds.
"""

import uuid

from design_desk.extensions import db


class DesignRequest(db.Model):
    __tablename__ = "design_requests"

    # -- Valid request types --
    REQUEST_TYPES = [
        "social_media", "print", "digital", "branding", "presentation", "other",
    ]

    # -- Valid priorities --
    PRIORITIES = ["urgent", "high", "medium", "low"]

    # -- Valid statuses (any -> any; only delete is gated) --
    STATUSES = ["pending", "in_progress", "completed", "cancelled"]

    # -- Only these statuses may be deleted --
    DELETABLE_STATUSES = ["completed"]

    REQUIRED_FIELDS = [
        "requester_name",
        "requester_email",
        "department",
        "request_type",
        "title",
        "description",
        "objective",
        "target_audience",
        "deadline",
        "priority",
    ]

    OPTIONAL_FIELDS = [
        "dimensions",
        "color_preferences",
        "reference_links",
        "additional_notes",
    ]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    requester_name = db.Column(db.String(255), nullable=False)
    requester_email = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(255), nullable=False)
    request_type = db.Column(
        db.String(50), nullable=False
    )  # social_media | print | digital | branding | presentation | other
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    objective = db.Column(db.Text, nullable=False)
    target_audience = db.Column(db.Text, nullable=False)
    deadline = db.Column(db.Date, nullable=False)
    priority = db.Column(
        db.String(50), default="medium", nullable=False
    )  # urgent | high | medium | low
    dimensions = db.Column(db.String(255), nullable=True)
    color_preferences = db.Column(db.Text, nullable=True)
    reference_links = db.Column(db.Text, nullable=True)
    additional_notes = db.Column(db.Text, nullable=True)
    reference_images = db.Column(
        db.JSON, default=list, nullable=False
    )  # public URLs, upload order
    status = db.Column(
        db.String(50), default="pending", nullable=False
    )  # pending | in_progress | completed | cancelled
    external_card_id = db.Column(db.String(64), nullable=True)
    external_card_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.Index("ix_design_requests_status_created_at", "status", "created_at"),
    )

    @property
    def is_synced(self):
        return bool(self.external_card_id)

    @property
    def can_delete(self):
        return self.status in self.DELETABLE_STATUSES

    def to_dict(self):
        return {
            "id": self.id,
            "requester_name": self.requester_name,
            "requester_email": self.requester_email,
            "department": self.department,
            "request_type": self.request_type,
            "title": self.title,
            "description": self.description,
            "objective": self.objective,
            "target_audience": self.target_audience,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "priority": self.priority,
            "dimensions": self.dimensions,
            "color_preferences": self.color_preferences,
            "reference_links": self.reference_links,
            "additional_notes": self.additional_notes,
            "reference_images": list(self.reference_images or []),
            "status": self.status,
            "external_card_id": self.external_card_id,
            "external_card_url": self.external_card_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<DesignRequest {self.title[:30]} ({self.status})>"
