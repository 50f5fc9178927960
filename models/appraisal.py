from sqlalchemy import Column, Integer, String, Text, Float, DateTime, UniqueConstraint, func
from sqlalchemy import ForeignKey
from database import Base

class Appraisal(Base):
    __tablename__ = "appraisals"
    __table_args__ = (
        UniqueConstraint("employee_id", "cycle_id", name="uq_appraisals_employee_cycle"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    cycle_id = Column(Integer, ForeignKey("review_cycles.id"), nullable=False, index=True)
    review_year = Column(Integer, nullable=False)
    past_ctc = Column(Integer, nullable=False)
    current_ctc = Column(Integer, nullable=False)
    hike_percentage = Column(Float, nullable=False, default=0.0)
    notes = Column(Text)
    updated_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "cycle_id": self.cycle_id,
            "review_year": self.review_year,
            "past_ctc": self.past_ctc,
            "current_ctc": self.current_ctc,
            "hike_percentage": self.hike_percentage,
            "notes": self.notes,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
