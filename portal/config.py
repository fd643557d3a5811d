from pydantic_settings import BaseSettings
from pydantic import Field
import os

class Settings(BaseSettings):
    # === DATABASE ===
    DATABASE_URL: str = Field(default=os.environ.get("DATABASE_URL", "sqlite:///./portal.db"), description="SQLAlchemy database URL")

    # === JWT AUTH ===
    SECRET_KEY: str = Field(default=os.environ.get("SECRET_KEY", "change-me"), description="Secret key for JWT token signing")
    ALGORITHM: str = Field(default=os.environ.get("ALGORITHM", "HS256"), description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60)), description="JWT token expiration time in minutes")

    # === APPLICATION RESTRICTIONS ===
    MAX_DISTINCT_POST_NAMES: int = Field(default=int(os.environ.get("MAX_DISTINCT_POST_NAMES", 2)), description="Distinct post names an applicant may apply to")
    MAX_OSC_PER_POST_NAME: int = Field(default=int(os.environ.get("MAX_OSC_PER_POST_NAME", 2)), description="Components (OSC) allowed per post name")

    # === PAYMENT ===
    PAYMENT_ENABLED: bool = Field(default=os.environ.get("PAYMENT_ENABLED", "false").lower() == "true", description="Application fee collection switch")
    PAYMENT_BASE_FEE: float = Field(default=float(os.environ.get("PAYMENT_BASE_FEE", 100)), description="Base application fee in INR")
    PAYMENT_PLATFORM_FEE_PERCENT: float = Field(default=float(os.environ.get("PAYMENT_PLATFORM_FEE_PERCENT", 2.5)), description="Platform fee percent of base fee")
    PAYMENT_CGST_PERCENT: float = Field(default=float(os.environ.get("PAYMENT_CGST_PERCENT", 9)), description="CGST percent")
    PAYMENT_SGST_PERCENT: float = Field(default=float(os.environ.get("PAYMENT_SGST_PERCENT", 9)), description="SGST percent")

    # === PAYMENT GATEWAY ===
    RAZORPAY_KEY_ID: str = Field(default=os.environ.get("RAZORPAY_KEY_ID", ""), description="Razorpay key id")
    RAZORPAY_KEY_SECRET: str = Field(default=os.environ.get("RAZORPAY_KEY_SECRET", ""), description="Razorpay key secret")
    RAZORPAY_API_URL: str = Field(default=os.environ.get("RAZORPAY_API_URL", "https://api.razorpay.com/v1"), description="Razorpay API base URL")

    # === CRON ===
    CRON_ENABLED: bool = Field(default=os.environ.get("CRON_ENABLED", "true").lower() == "true", description="Run scheduled post closing")
    POST_CLOSE_HOUR: int = Field(default=int(os.environ.get("POST_CLOSE_HOUR", 0)), description="Hour of the daily post-closing run")
    POST_CLOSE_MINUTE: int = Field(default=int(os.environ.get("POST_CLOSE_MINUTE", 5)), description="Minute of the daily post-closing run")
    CRON_TIMEZONE: str = Field(default=os.environ.get("CRON_TIMEZONE", "Asia/Kolkata"), description="Timezone of the daily run")

    # === MERIT ===
    MERIT_AGE_PREFERENCE: str = Field(default=os.environ.get("MERIT_AGE_PREFERENCE", "YOUNGER"), description="YOUNGER or OLDER")

    # === CORS ===
    CORS_ORIGINS: str = Field(default=os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"), description="Comma separated origins")

    # === DEBUG MODE ===
    DEBUG: bool = Field(default=os.environ.get("DEBUG", "False").lower() == "true", description="Debug mode")
    LOG_LEVEL: str = Field(default=os.environ.get("LOG_LEVEL", "INFO"), description="Root log level")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

# Create settings instance
settings = Settings()
