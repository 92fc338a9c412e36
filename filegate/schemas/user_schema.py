from datetime import datetime

from pydantic import AliasChoices, BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    identity_assertion: str = Field(..., min_length=1, example="eyJhbGciOiJSUzI1NiIsImtpZCI6Ij",
                                    description="ID token issued by the identity provider",
                                    validation_alias=AliasChoices("identity_assertion", "google_token"))


class UserResponse(BaseModel):
    id: int = Field(..., example=1, description="User identification number")
    name: str = Field(..., example="Jane Doe", description="Display name reported by the identity provider")
    email: EmailStr = Field(..., example="user@example.com", description="User's email address")

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: str = Field(..., example="eyJhbGciOiJIUzI1NiIsInR", description="JWT session token")
    token_type: str = Field("bearer", example="bearer", description="Type of the token")
    expires_at: datetime = Field(..., example="2025-09-04T12:34:56Z", description="Moment the session token stops being accepted")
    user: UserResponse


class MessageResponse(BaseModel):
    detail: str = Field(..., example="Operation completed successfully",
                        description="Message displayed after the command has been successfully executed")

    class Config:
        from_attributes = True
