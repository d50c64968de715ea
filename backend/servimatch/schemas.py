from pydantic import BaseModel, EmailStr, Field, ConfigDict, PlainSerializer, field_validator
from typing import Annotated, Optional, List
from datetime import date, datetime, time
from decimal import Decimal
import enum

from .models import (
    UserRole, WorkerAvailability, DayOfWeek, Urgency,
    ServiceRequestStatus, AppointmentStatus,
)

# Decimal in storage and validation, plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

# Labels sent by the Spanish-language mobile client
_DAY_ALIASES = {
    "lunes": DayOfWeek.MONDAY,
    "martes": DayOfWeek.TUESDAY,
    "miércoles": DayOfWeek.WEDNESDAY,
    "miercoles": DayOfWeek.WEDNESDAY,
    "jueves": DayOfWeek.THURSDAY,
    "viernes": DayOfWeek.FRIDAY,
    "sábado": DayOfWeek.SATURDAY,
    "sabado": DayOfWeek.SATURDAY,
    "domingo": DayOfWeek.SUNDAY,
}


# ----------------------------
# USER
# ----------------------------

class UserRead(BaseModel):
    id: int
    email: EmailStr
    name: str
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserProfileRead(UserRead):
    # worker-only fields, NULL for clients
    profession: Optional[str] = None
    description: Optional[str] = None
    availability: Optional[WorkerAvailability] = None
    rating: Optional[Money] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    profession: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenWithUser(Token):
    user: UserProfileRead


class RoleUpdate(BaseModel):
    role: UserRole


class ProfessionUpdate(BaseModel):
    profession: str = Field(..., min_length=1)
    description: Optional[str] = None


class ProfileUpdate(BaseModel):
    # Every field optional; only fields that are sent get written
    name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    profession: Optional[str] = None
    description: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UserStats(BaseModel):
    # Worker fields or client fields are filled depending on role
    role: Optional[UserRole] = None
    total_services: int = 0
    total_earnings: Optional[Money] = None
    average_earning: Optional[Money] = None
    rating: Optional[Money] = None
    total_spent: Optional[Money] = None
    average_spent: Optional[Money] = None


class WorkerPublic(BaseModel):
    id: int
    name: str
    avatar_url: Optional[str] = None
    profession: Optional[str] = None
    description: Optional[str] = None
    availability: WorkerAvailability
    rating: Money
    member_since: datetime


# ----------------------------
# SERVICE REQUEST
# ----------------------------

class ServiceRequestCreate(BaseModel):
    worker_id: int
    service_type: str = Field(..., min_length=1)
    urgency: Optional[Urgency] = None  # default medium
    description: Optional[str] = None
    budget_estimate: Optional[Money] = Field(None, ge=0)
    preferred_date: Optional[date] = None
    preferred_time: Optional[time] = None
    contact_method: Optional[str] = None  # default "both"


class ServiceRequestRead(BaseModel):
    id: int
    client_id: int
    worker_id: int
    service_type: str
    urgency: Urgency
    description: Optional[str] = None
    budget_estimate: Optional[Money] = None
    preferred_date: Optional[date] = None
    preferred_time: Optional[time] = None
    contact_method: str
    client_phone: Optional[str] = None
    status: ServiceRequestStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RequestStatusUpdate(BaseModel):
    status: ServiceRequestStatus


class AcceptRequest(BaseModel):
    budget_amount: Optional[Money] = Field(None, ge=0)


# ----------------------------
# APPOINTMENT
# ----------------------------

class AppointmentCreate(BaseModel):
    worker_id: int
    service_type: str = Field(..., min_length=1)
    scheduled_date: date
    scheduled_time: time
    description: Optional[str] = None
    address: Optional[str] = None
    contact_phone: Optional[str] = None
    special_instructions: Optional[str] = None


class AppointmentRead(BaseModel):
    id: int
    client_id: int
    worker_id: int
    service_type: str
    description: Optional[str] = None
    scheduled_date: date
    scheduled_time: time
    status: AppointmentStatus
    total_cost: Optional[Money] = None
    address: Optional[str] = None
    contact_phone: Optional[str] = None
    special_instructions: Optional[str] = None
    source_request_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class PriceUpdate(BaseModel):
    total_cost: Money = Field(..., ge=0)


class AcceptResult(BaseModel):
    request: ServiceRequestRead
    appointment: AppointmentRead
    budget_estimate: Optional[Money] = None


# ----------------------------
# EARNINGS
# ----------------------------

class EarningsRange(str, enum.Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class EarningsTransaction(BaseModel):
    id: int
    service_type: str
    total_cost: Optional[Money] = None
    status: str  # "completed" | "pending"
    date: date
    created_at: datetime
    client_name: Optional[str] = None


class EarningsSummary(BaseModel):
    total_earnings: Money
    pending_earnings: Money
    transactions: List[EarningsTransaction] = []


class EarningsStats(BaseModel):
    weekly_earnings: Money
    monthly_earnings: Money
    yearly_earnings: Money
    total_completed: int


# ----------------------------
# AVAILABILITY
# ----------------------------

class TimeSlot(BaseModel):
    day: DayOfWeek
    enabled: bool
    start_time: time
    end_time: time

    model_config = ConfigDict(from_attributes=True)

    @field_validator("day", mode="before")
    @classmethod
    def _day_alias(cls, v):
        if isinstance(v, str):
            key = v.strip().lower()
            return _DAY_ALIASES.get(key, key)
        return v


class AvailabilityUpdate(BaseModel):
    time_slots: List[TimeSlot]
    coverage_radius: Optional[int] = Field(None, ge=0)
    immediate_service: Optional[bool] = None


class AvailabilityStatusUpdate(BaseModel):
    availability: WorkerAvailability


class AvailabilitySnapshot(BaseModel):
    availability: WorkerAvailability
    immediate_service: bool
    coverage_radius: int
    time_slots: List[TimeSlot]


class AvailabilityStats(BaseModel):
    active_days: int
    weekly_hours: int
    availability_percentage: int
