from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, func
from sqlalchemy import ForeignKey
from database import Base

ONBOARDING_STATUSES = ("pending", "in_review", "approved", "rejected")

class OnboardingSubmission(Base):
    __tablename__ = "employee_onboarding"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(Text, nullable=False)
    personal_email = Column(String(320), nullable=False, index=True)
    personal_phone = Column(Text)
    job_title = Column(Text)
    department = Column(Text)
    employment_type = Column(String(20))
    date_of_joining = Column(Text)
    form_data = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="pending", index=True)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewer_comment = Column(Text)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "personal_email": self.personal_email,
            "personal_phone": self.personal_phone,
            "job_title": self.job_title,
            "department": self.department,
            "employment_type": self.employment_type,
            "date_of_joining": self.date_of_joining,
            "form_data": self.form_data or {},
            "status": self.status,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewer_comment": self.reviewer_comment,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
