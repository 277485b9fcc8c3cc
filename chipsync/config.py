"""Application configuration."""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Application configuration loaded from environment variables."""
    
    # Server
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    
    # Loans
    max_loan: int = int(os.getenv("MAX_LOAN", "500"))
    loan_interest_percent: int = int(os.getenv("LOAN_INTEREST_PERCENT", "20"))
    
    # Send an actionRejected message back to the sender instead of dropping silently
    report_rejections: bool = _env_flag("REPORT_REJECTIONS")
    
    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


config = Config()
