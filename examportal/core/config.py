"""
Configuration settings for the application
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Since we're in examportal/core/, go up 2 levels to get to project root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Database Configuration
DATABASE_DIR = os.getenv("DATABASE_DIR", os.path.join(BASE_DIR, "data"))
DATABASE_PATH = os.path.join(DATABASE_DIR, "app.db")
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATABASE_PATH}")

# Session clock: length of one countdown unit in seconds.
# Exam durations are authored in units, so 60 means "duration in minutes".
CLOCK_UNIT_SECONDS = float(os.getenv("CLOCK_UNIT_SECONDS", "60"))

# Review report: mastery percentage at or above which an attempt counts as passed
MASTERY_PASS_THRESHOLD = int(os.getenv("MASTERY_PASS_THRESHOLD", "70"))

# Together.ai API Configuration (advisory feedback only, never used for scoring)
TOGETHER_AI_API_KEY = os.getenv("TOGETHER_AI_API_KEY", "")
TOGETHER_AI_API_URL = os.getenv("TOGETHER_AI_API_URL", "https://api.together.xyz/v1/chat/completions")
TOGETHER_AI_MODEL = os.getenv("TOGETHER_AI_MODEL", "mistralai/Mixtral-8x7B-Instruct-v0.1")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "120"))
