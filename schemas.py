"""
Request and response schemas for the EduElevate API

Users, classes and enrollments are loosely shaped MongoDB documents, so the
request models only pin the fields the handlers read and let clients send
anything else alongside them.
"""
from typing import Optional, Literal, Dict, Any

from pydantic import BaseModel, Field

Role = Literal["student", "teacher", "admin"]
RequestStatus = Literal["Pending", "Accepted", "Rejected"]


# ==================== AUTH / PAYMENT ====================

class TokenRequest(BaseModel):
    """Arbitrary claims to sign"""

    class Config:
        extra = "allow"


class TokenResponse(BaseModel):
    token: str


class PaymentIntentRequest(BaseModel):
    price: float


class PaymentIntentResponse(BaseModel):
    clientSecret: str


# ==================== USERS ====================

class UserUpsertRequest(BaseModel):
    email: str = Field(..., min_length=1)  # stored exactly as sent
    name: Optional[str] = None
    photo: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[RequestStatus] = None
    teacherReqData: Optional[Dict[str, Any]] = None

    class Config:
        extra = "allow"


# ==================== CLASSES ====================

class ClassRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None  # owning teacher
    price: Optional[float] = None
    status: Optional[RequestStatus] = None

    class Config:
        extra = "allow"


class ClassReviewRequest(BaseModel):
    """Optional fields stored with an approve/reject decision"""
    feedback: Optional[str] = None

    class Config:
        extra = "allow"


class AssignmentRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[str] = None

    class Config:
        extra = "allow"


# ==================== ENROLLMENTS ====================

class EnrollmentRequest(BaseModel):
    email: str = Field(..., min_length=1)  # stored exactly as sent

    class Config:
        extra = "allow"


# ==================== WRITE RESULTS ====================

class InsertResultResponse(BaseModel):
    acknowledged: bool
    insertedId: str


class UpdateResultResponse(BaseModel):
    acknowledged: bool
    matchedCount: int
    modifiedCount: int
    upsertedCount: int = 0
    upsertedId: Optional[str] = None


class DeleteResultResponse(BaseModel):
    acknowledged: bool
    deletedCount: int
