"""
Pydantic schemas for session endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


class SessionStatusResponse(BaseModel):
    """
    Current session state as seen by the timeout policy.

    WHY: Lets the frontend show the "you will be logged out" dialog from
    data instead of guessing from local timers.
    """

    userId: int = Field(..., description="Authenticated user ID")
    firmId: Optional[int] = Field(None, description="User's firm, if any")
    idleRemainingSeconds: Optional[int] = Field(
        None, description="Seconds before the idle timeout (None when unknown)"
    )
    absoluteRemainingSeconds: Optional[int] = Field(
        None, description="Seconds before the absolute timeout (None when unknown)"
    )
    idleWarning: bool = False
    absoluteWarning: bool = False
    emailVerified: bool


class LogoutResponse(BaseModel):
    message: str = "Successfully logged out"
    messageAr: str = "تم تسجيل الخروج بنجاح"
