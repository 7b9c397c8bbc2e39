"""
Application settings module
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv(encoding='utf-8')


class Settings(BaseSettings):
    """Application settings"""
    
    # Database
    database_url: str = "sqlite:///./data/legal_workflow.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_timeout_seconds: float = 10.0
    db_echo: bool = False
    
    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    
    # Logging
    log_level: str = "INFO"
    log_file_path: str = "./logs/app.log"
    log_config_path: str = "config/logging.yaml"
    
    # Environment
    environment: str = "development"
    
    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8080"
    
    # File Upload
    upload_dir: str = "./data/uploads"
    max_file_size_mb: int = 10
    
    # Calendar day used for sequence partitions (None = process local time)
    business_timezone: Optional[str] = None
    
    # Sequence allocation
    sequence_max_attempts: int = 3
    sequence_pad_width: int = 4
    
    # Notices
    duplicate_notice_window_days: int = 7
    acknowledgement_future_tolerance_days: int = 0
    legal_notice_dpd_threshold: int = 90
    default_notice_validity_days: int = 15
    
    # Lawyer selection
    lawyer_selection_strategy: str = "load_balance"
    default_candidate_limit: int = 10
    
    @field_validator("lawyer_selection_strategy")
    @classmethod
    def check_strategy(cls, value: str) -> str:
        if value not in ("load_balance", "composite_score"):
            raise ValueError(f"unknown lawyer selection strategy: {value}")
        return value
    
    @field_validator("sequence_max_attempts", "sequence_pad_width")
    @classmethod
    def check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value
    
    @field_validator(
        "duplicate_notice_window_days",
        "acknowledgement_future_tolerance_days",
        "default_notice_validity_days",
    )
    @classmethod
    def check_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Split the CORS origins into a list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]
    
    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
