import os

from dotenv import load_dotenv

load_dotenv()

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_REFERER = os.getenv("OPENROUTER_REFERER", "https://backend-generator.ai")
OPENROUTER_TITLE = os.getenv("OPENROUTER_TITLE", "Backend Generator API")

PROJECTS_DIR = os.path.abspath(
    os.getenv(
        "PROJECTS_DIR",
        os.path.join(os.path.dirname(__file__), "..", "generated_projects"),
    )
)

ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

METADATA_FILE = "project-metadata.json"
SUMMARY_FILE = "PROJECT_SUMMARY.md"


def is_production() -> bool:
    return ENVIRONMENT.lower() == "production"
