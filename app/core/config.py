import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rentals.db")
REDIS_URL = os.getenv("REDIS_URL")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

LOG_DIR = os.getenv("LOG_DIR", "logs")

# Redis guard around "create return request" / "activate schedule"
WRITE_LOCK_TTL_SECONDS = int(os.getenv("WRITE_LOCK_TTL_SECONDS", 10))
