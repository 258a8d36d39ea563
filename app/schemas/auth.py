from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class RegisterIn(BaseModel):
    fullName: str = Field(min_length=2, max_length=101)
    email: EmailStr
    password: str = Field(min_length=8)
    phoneNumber: str | None = None


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class OtpRequestIn(BaseModel):
    email: EmailStr


class OtpVerifyIn(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class PasswordResetIn(BaseModel):
    email: EmailStr
    resetToken: str = Field(min_length=1)
    newPassword: str = Field(min_length=1)
    confirmPassword: str = Field(min_length=1)


class UserPublic(BaseModel):
    id: str
    firstName: str
    lastName: str
    email: EmailStr
    phoneNumber: str
    lastLogin: datetime | None = None
    loginCount: int = 0


class AuthData(BaseModel):
    user: UserPublic
    token: str


class AuthEnvelope(BaseModel):
    success: bool = True
    message: str
    data: AuthData


class LoginEnvelope(AuthEnvelope):
    isFirstLogin: bool


class MeEnvelope(BaseModel):
    success: bool = True
    data: UserPublic


class OtpRequestOut(BaseModel):
    success: bool = True
    message: str
    note: str | None = None
    requestsRemaining: int | None = None


class OtpVerifyOut(BaseModel):
    success: bool = True
    message: str
    resetToken: str
    note: str


class PasswordResetOut(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserPublic
