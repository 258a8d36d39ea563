from functools import lru_cache
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

class RecoverySettings(BaseModel):
    secret_pepper: str = Field("change-me", description="HMAC key for OTP and reset token digests")
    otp_ttl_s: int = Field(300, description="Lifetime of an issued OTP")
    otp_max_attempts: int = Field(3, description="Failed verifications allowed per OTP")
    otp_request_window_s: int = Field(3600, description="Rolling window for OTP requests")
    otp_max_requests: int = Field(3, description="OTP requests allowed within the window")
    otp_block_s: int = Field(3600, description="Block duration once the request limit is hit")
    reset_token_ttl_s: int = Field(900, description="Lifetime of a reset token")
    reset_token_bytes: int = Field(32, description="Random bytes in a reset token")
    password_min_length: int = Field(8, description="Minimum length of a new password")


class HashingSettings(BaseModel):
    time_cost: int = 3
    memory_cost: int = 65536
    parallelism: int = 2


class Settings(BaseSettings):
    api_title: str = "CV Builder Auth API"
    api_version: str = "1.0.0"
    log_level: str = "INFO"

    database_url: str = Field(..., env="DATABASE_URL")

    jwt_secret: str = Field(..., env="JWT_SECRET")
    jwt_iss: str = Field(..., env="JWT_ISS")
    access_token_minutes: int = 60 * 24 * 7
    session_days: int = 7

    cors_origins: list[str] = [
        "http://localhost:5500",
        "http://127.0.0.1:5500",
    ]

    mail_sender: str = Field(..., env="MAIL_SENDER")
    mail_sender_name: str = "CV Builder App"
    mail_host: str = Field(..., env="MAIL_HOST")
    mail_port: int = Field(587, env="MAIL_PORT")
    mail_username: str = Field(..., env="MAIL_USERNAME")
    mail_password: str = Field(..., env="MAIL_PASSWORD")
    mail_use_tls: bool = True
    mail_suppress_send: bool = False

    recovery: RecoverySettings = RecoverySettings()
    hashing: HashingSettings = HashingSettings()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
