import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Frontend origin allowed by CORS; "*" in development
    FRONTEND_URL = os.getenv("FRONTEND_URL", "*")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # OpenAI-compatible chat completions endpoint used for site generation
    OPENAI_API_KEY = (os.getenv("OPENAI_API_KEY") or "").strip()
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    GENERATION_TIMEOUT_SECONDS = int(os.getenv("GENERATION_TIMEOUT_SECONDS", "120"))

    # Credits
    GENERATION_COST = int(os.getenv("GENERATION_COST", "5"))
    MODIFICATION_COST = int(os.getenv("MODIFICATION_COST", "0"))
    INITIAL_CREDITS = int(os.getenv("INITIAL_CREDITS", "20"))

    TOKEN_MAX_AGE_SECONDS = int(os.getenv("TOKEN_MAX_AGE_SECONDS", str(7 * 24 * 3600)))
