# config.py
# Environment-driven settings for the backend

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file (for local development)
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_PRO_MODEL = os.getenv("OPENAI_PRO_MODEL", "gpt-4o")

DATA_DIR = Path(os.getenv("TR_ANALYZER_DATA_DIR", str(BASE_DIR / "data")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# character budgets for text sent to the model
ANALYSIS_CHAR_LIMIT = 30000
CHAT_CONTEXT_CHAR_LIMIT = 15000
PROPOSAL_CONTEXT_CHAR_LIMIT = 10000
DOCUMENT_CONTEXT_CHAR_LIMIT = 10000
