import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DB_FILE = os.getenv("PROPDESK_DB_FILE", "propdesk.db")
LOG_LEVEL = os.getenv("PROPDESK_LOG_LEVEL", "INFO").upper()
SEED_DEMO = os.getenv("PROPDESK_SEED_DEMO", "true").lower() == "true"

# Units and property-detail tabs page through this many rows
PAGE_SIZE = int(os.getenv("PROPDESK_PAGE_SIZE", "10"))

CURRENCY = os.getenv("PROPDESK_CURRENCY", "KES")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level=None):
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
