from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text

from worktime.database import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(String, primary_key=True, index=True)

    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    subsidiary_id = Column(Integer, ForeignKey("subsidiaries.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True, index=True)

    work_date = Column(Date, nullable=False)
    minutes = Column(Integer, nullable=False)

    note = Column(Text, nullable=True)
    requester = Column(String(255), nullable=True)

    status = Column(String, nullable=False, index=True)

    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("minutes >= 1 AND minutes <= 1440", name="ck_time_entries_minutes_range"),
        CheckConstraint(
            "status IN ('DRAFT', 'SUBMITTED', 'APPROVED', 'REJECTED')",
            name="ck_time_entries_status",
        ),
        Index("ix_time_entries_employee_date", "employee_id", "work_date"),
        Index("ix_time_entries_subsidiary_date", "subsidiary_id", "work_date"),
    )
