from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class PostSignupRequest(BaseModel):
    user_id: str = Field(alias="userId")
    email: str
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    phone: Optional[str] = None
    referral_code: str = Field(alias="referralCode")
    referred_by: Optional[str] = Field(default=None, alias="referredBy")
    interview_data: Optional[Dict[str, Any]] = Field(default=None, alias="interviewData")

    class Config:
        populate_by_name = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class RepairReferralRequest(BaseModel):
    referred_email: Optional[str] = Field(default=None, alias="referredEmail")

    class Config:
        populate_by_name = True


class SuccessResponse(BaseModel):
    success: bool = True


class ReferralResponse(BaseModel):
    id: str
    referrer_user_id: str
    referrer_code: str
    referred_user_id: str
    referred_email: str
    referred_name: str
    status: str
    created_at: datetime
    activated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReferralStats(BaseModel):
    total: int = 0
    pending: int = 0
    active: int = 0


class ReferralOverview(BaseModel):
    referral_code: Optional[str] = None
    referral_link: Optional[str] = None
    stats: ReferralStats
