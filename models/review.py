from sqlalchemy import Column, Integer, String, Text, Date, DateTime, JSON, UniqueConstraint, func
from sqlalchemy import ForeignKey
from database import Base

CYCLE_TYPES = ("6-month", "1-year")
CYCLE_STATUSES = ("draft", "active", "locked", "completed")
CLOSED_CYCLE_STATUSES = ("locked", "completed")
REVIEWER_TYPES = ("self", "peer", "client", "manager")
FORM_STATUSES = ("pending", "draft", "submitted", "approved")

class ReviewCycle(Base):
    __tablename__ = "review_cycles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    cycle_type = Column(String(10), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="draft", index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_CYCLE_STATUSES

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "cycle_type": self.cycle_type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ReviewerAssignment(Base):
    __tablename__ = "reviewer_assignments"
    __table_args__ = (
        UniqueConstraint(
            "cycle_id", "employee_id", "reviewer_id", "reviewer_type",
            name="uq_reviewer_assignments_tuple",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    cycle_id = Column(Integer, ForeignKey("review_cycles.id"), nullable=False, index=True)
    employee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reviewer_type = Column(String(10), nullable=False)
    assigned_by = Column(String(36), ForeignKey("users.id"))
    status = Column(String(20), nullable=False, default="pending")
    notified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    @property
    def composite_key(self):
        return (self.employee_id, self.reviewer_id, self.reviewer_type)

    def to_dict(self):
        return {
            "id": self.id,
            "cycle_id": self.cycle_id,
            "employee_id": self.employee_id,
            "reviewer_id": self.reviewer_id,
            "reviewer_type": self.reviewer_type,
            "assigned_by": self.assigned_by,
            "status": self.status,
            "notified_at": self.notified_at.isoformat() if self.notified_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ReviewForm(Base):
    __tablename__ = "review_forms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    assignment_id = Column(Integer, ForeignKey("reviewer_assignments.id"), unique=True, nullable=True)
    cycle_id = Column(Integer, ForeignKey("review_cycles.id"), nullable=False, index=True)
    employee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reviewer_type = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    overall_rating = Column(Integer)
    goals_achievement = Column(Text)
    strengths = Column(Text)
    improvements = Column(Text)
    kpi_scores = Column(JSON)
    additional_comments = Column(Text)
    submitted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def composite_key(self):
        return (self.employee_id, self.reviewer_id, self.reviewer_type)

    def to_dict(self):
        return {
            "id": self.id,
            "assignment_id": self.assignment_id,
            "cycle_id": self.cycle_id,
            "employee_id": self.employee_id,
            "reviewer_id": self.reviewer_id,
            "reviewer_type": self.reviewer_type,
            "status": self.status,
            "overall_rating": self.overall_rating,
            "goals_achievement": self.goals_achievement,
            "strengths": self.strengths,
            "improvements": self.improvements,
            "kpi_scores": self.kpi_scores,
            "additional_comments": self.additional_comments,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ReviewComment(Base):
    __tablename__ = "review_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(Integer, ForeignKey("review_forms.id"), nullable=False, index=True)
    commenter_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    commenter_role = Column(String(20), nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "form_id": self.form_id,
            "commenter_id": self.commenter_id,
            "commenter_role": self.commenter_role,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
