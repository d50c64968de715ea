from sqlalchemy import (
    Column, Integer, String, ForeignKey, Date, DateTime, Text, Boolean, Numeric,
    UniqueConstraint, Index, CheckConstraint, Time, func
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship, declarative_base
import enum

Base = declarative_base()


def _enum_column(enum_cls, name: str, **kwargs):
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda e: [x.value for x in e],
        native_enum=False,
        validate_strings=True,
        create_constraint=True,
        **kwargs,
    )


class UserRole(str, enum.Enum):
    CLIENT = "client"
    WORKER = "worker"
    ADMIN = "admin"


class WorkerAvailability(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class DayOfWeek(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class Urgency(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class ServiceRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---- Identity ----

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)
    # NULL for accounts created through an external identity provider
    hashed_password = Column(String, nullable=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)

    # NULL until the user picks client/worker after sign-up
    role = Column(_enum_column(UserRole, "userrole"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    worker_profile = relationship("WorkerProfile", back_populates="user", uselist=False, passive_deletes=True)


class WorkerProfile(Base):
    __tablename__ = "workers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    profession = Column(String, nullable=True, index=True)
    description = Column(Text, nullable=True)
    rating = Column(Numeric(3, 2), nullable=False, server_default="0")

    availability = Column(
        _enum_column(WorkerAvailability, "workeravailability"),
        nullable=False,
        server_default=WorkerAvailability.AVAILABLE.value,
    )
    immediate_service = Column(Boolean, nullable=False, server_default="false")
    coverage_radius_km = Column(Integer, nullable=False, server_default="15")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="worker_profile")

    __table_args__ = (
        CheckConstraint("coverage_radius_km >= 0", name="ck_worker_radius_nonneg"),
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_worker_rating_range"),
        Index("ix_worker_availability_rating", "availability", "rating"),
    )


class WeeklyAvailabilitySlot(Base):
    """
    One row per weekday per worker. Saved with update-if-exists else insert.
    """
    __tablename__ = "worker_availability"

    id = Column(Integer, primary_key=True)
    worker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    day_of_week = Column(_enum_column(DayOfWeek, "dayofweek"), nullable=False)
    enabled = Column(Boolean, nullable=False, server_default="true")
    start_time = Column(Time, nullable=False)  # e.g. 09:00
    end_time = Column(Time, nullable=False)    # e.g. 18:00

    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("worker_id", "day_of_week", name="uq_worker_availability_day"),
    )


# ---- Engagements ----

class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    service_type = Column(String, nullable=False)
    urgency = Column(_enum_column(Urgency, "urgency"), nullable=False, server_default=Urgency.MEDIUM.value)
    description = Column(Text, nullable=True)
    budget_estimate = Column(Numeric(10, 2), nullable=True)

    # Both NULL = "respond now"
    preferred_date = Column(Date, nullable=True)
    preferred_time = Column(Time, nullable=True)

    contact_method = Column(String, nullable=False, server_default="both")
    client_phone = Column(String, nullable=True)

    status = Column(
        _enum_column(ServiceRequestStatus, "servicerequeststatus"),
        nullable=False,
        server_default=ServiceRequestStatus.PENDING.value,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint("budget_estimate IS NULL OR budget_estimate >= 0", name="ck_request_budget_nonneg"),
        Index("ix_request_worker_status_created", "worker_id", "status", "created_at"),
    )


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    service_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(Time, nullable=False)

    status = Column(
        _enum_column(AppointmentStatus, "appointmentstatus"),
        nullable=False,
        server_default=AppointmentStatus.PENDING.value,
    )
    total_cost = Column(Numeric(10, 2), nullable=True)

    address = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    special_instructions = Column(Text, nullable=True)

    # Set when the appointment was materialized from an accepted request
    source_request_id = Column(
        Integer,
        ForeignKey("service_requests.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("total_cost IS NULL OR total_cost >= 0", name="ck_appointment_cost_nonneg"),
        Index("ix_appointment_worker_status_date", "worker_id", "status", "scheduled_date"),
    )
