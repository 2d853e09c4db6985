import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slotbook.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Comma separated list of frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")

# "Today" for provisioning checks is evaluated in this timezone
SCHEDULING_TIMEZONE = os.getenv("SCHEDULING_TIMEZONE", "UTC")

# Slot provisioning limits
SLOT_BULK_MAX_QUANTITY = int(os.getenv("SLOT_BULK_MAX_QUANTITY", "50"))
SLOT_PROVISION_HORIZON_DAYS = int(os.getenv("SLOT_PROVISION_HORIZON_DAYS", "30"))
SLOT_PROVISION_MAX_RETRIES = int(os.getenv("SLOT_PROVISION_MAX_RETRIES", "3"))

# Accepted appointment types for tenants that have no catalog rows yet
DEFAULT_APPOINTMENT_TYPES = [
    code.strip()
    for code in os.getenv(
        "DEFAULT_APPOINTMENT_TYPES", "installation,maintenance,technical_visit,support"
    ).split(",")
    if code.strip()
]

# Type given to appointments booked from a sales contract
CONTRACT_APPOINTMENT_TYPE = os.getenv("CONTRACT_APPOINTMENT_TYPE", "installation")

# Listing page size limits
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "200"))
