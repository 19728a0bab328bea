# backend/config.py

import os
import logging
from dotenv import load_dotenv

# ─── Load .env ─────────────────────────────────────────────────────────────────
load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Origins we explicitly know about; localhost and *.netlify.app are always allowed
DEFAULT_ORIGINS = [
    "https://falconai1.netlify.app",
    "http://localhost:5173",
    "http://localhost:5174",
]
ORIGIN_REGEX = r"^(http://localhost(:\d+)?|https?://([a-z0-9-]+\.)*netlify\.app)$"


def _csv(value: str) -> list:
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings:
    """Runtime settings read from the environment.

    Services read ``settings`` at call time, so a key that is missing at
    startup only fails the requests that need it.
    """

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./falcon_chat.db")
        self.port = int(os.getenv("PORT", "5000"))

        self.jwt_secret = os.getenv("JWT_SECRET", "")
        self.jwt_algorithm = "HS256"
        self.access_token_expire_minutes = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7))  # 7 days
        )
        self.bcrypt_rounds = 10

        self.groq_api_key = os.getenv("GROQ_API_KEY", "")
        self.groq_model = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
        self.groq_url = os.getenv("GROQ_URL", "https://api.groq.com/openai/v1")

        self.deepseek_api_key = os.getenv("DEEPSEEK_API_KEY", "")
        self.deepseek_model = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
        self.deepseek_url = os.getenv("DEEPSEEK_URL", "https://api.deepseek.com")

        self.gemini_api_key = os.getenv("GEMINI_API_KEY", "")
        self.gemini_model = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.gemini_url = os.getenv(
            "GEMINI_URL", "https://generativelanguage.googleapis.com/v1beta"
        )

        self.hf_api_key = os.getenv("HF_API_KEY", "")
        self.hf_url = os.getenv("HF_URL", "https://api-inference.huggingface.co/models")
        self.hf_chat_model = os.getenv("HF_CHAT_MODEL", "facebook/blenderbot-400M-distill")
        self.hf_image_model = os.getenv("HF_IMAGE_MODEL", "stabilityai/stable-diffusion-2-1")

        self.weather_api_key = os.getenv("WEATHER_API_KEY", "")
        self.weather_url = os.getenv(
            "WEATHER_URL", "https://api.openweathermap.org/data/2.5/weather"
        )

        # Transport timeout (seconds) for every outbound call
        self.upstream_timeout = float(os.getenv("UPSTREAM_TIMEOUT", "60"))

        self.cors_origins = DEFAULT_ORIGINS + _csv(os.getenv("CORS_ORIGINS", ""))
        self.cors_origin_regex = ORIGIN_REGEX

        # Client side: where the shell talks to and where it keeps chats
        self.api_base = os.getenv("FALCON_API_BASE", "http://localhost:5000")
        self.storage_path = os.getenv(
            "FALCON_STORAGE", os.path.join(os.path.expanduser("~"), ".falcon_chat", "storage.json")
        )

    def missing_keys(self) -> list:
        names = {
            "JWT_SECRET": self.jwt_secret,
            "GROQ_API_KEY": self.groq_api_key,
            "GEMINI_API_KEY": self.gemini_api_key,
            "DEEPSEEK_API_KEY": self.deepseek_api_key,
            "HF_API_KEY": self.hf_api_key,
            "WEATHER_API_KEY": self.weather_api_key,
        }
        return [name for name, value in names.items() if not value]


settings = Settings()
