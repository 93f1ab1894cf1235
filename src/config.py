import os
from dotenv import load_dotenv

load_dotenv()

ROTATION_ATTEMPTS = int(os.getenv("ROTATION_ATTEMPTS", "100"))
ROTATION_WORKERS = int(os.getenv("ROTATION_WORKERS", "1"))
# seconds; 0 disables the deadline
ROTATION_TIME_BUDGET = float(os.getenv("ROTATION_TIME_BUDGET", "0"))
ROTATION_MAX_SAVED = int(os.getenv("ROTATION_MAX_SAVED", "50"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
