import os

from dotenv import load_dotenv

current_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.dirname(current_dir)
# Load env from backend/.env first, then the repo root, without overriding
load_dotenv(os.path.join(backend_dir, ".env"), override=False)
load_dotenv(os.path.join(os.path.dirname(backend_dir), ".env"), override=False)


def _is_production() -> bool:
    return (os.getenv("ENV") or "development").lower() == "production"


IS_PRODUCTION: bool = _is_production()

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./neo.db")

# OpenAI-compatible chat completions endpoint (Gemini by default)
LLM_BASE_URL: str = os.getenv(
    "LLM_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/"
)
LLM_API_KEY: str | None = (
    os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY") or os.getenv("OPENAI_API_KEY")
)
CODE_AGENT_MODEL: str = os.getenv("CODE_AGENT_MODEL", "gemini-2.5-flash")
CODE_AGENT_TEMPERATURE: float = float(os.getenv("CODE_AGENT_TEMPERATURE", "0.1"))
SUMMARY_MODEL: str = os.getenv("SUMMARY_MODEL", "gemini-2.0-flash")

ALLOWED_MODELS: list[str] = [
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
]

# Upper bound on model turns for one network run
AGENT_MAX_ITER: int = int(os.getenv("AGENT_MAX_ITER", "15"))
# Number of prior project messages replayed into the agent
HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "5"))

SANDBOX_TIMEOUT_MS: int = int(os.getenv("SANDBOX_TIMEOUT_MS", str(30 * 60 * 1000)))
# Vercel Container Registry image; empty uses the platform default
SANDBOX_IMAGE: str | None = os.getenv("SANDBOX_IMAGE") or None
SANDBOX_APP_PORT: int = int(os.getenv("SANDBOX_APP_PORT", "3000"))
SANDBOX_WRITE_CHUNK: int = 64

# Next.js app provisioning. With a template repo the sandbox is cloned from it
# and only the install command runs; otherwise the bootstrap command scaffolds it.
SANDBOX_TEMPLATE_REPO: str = os.getenv("SANDBOX_TEMPLATE_REPO", "")
SANDBOX_INSTALL_COMMAND: str = os.getenv("SANDBOX_INSTALL_COMMAND", "npm install --loglevel error")
SANDBOX_BOOTSTRAP_COMMAND: str = os.getenv(
    "SANDBOX_BOOTSTRAP_COMMAND",
    "npx --yes create-next-app@15 . --yes --ts --tailwind --eslint --app --no-src-dir --use-npm"
    " && npx --yes shadcn@2 init --yes --defaults"
    " && npx --yes shadcn@2 add --all --yes --overwrite",
)
SANDBOX_DEV_COMMAND: str = os.getenv(
    "SANDBOX_DEV_COMMAND", f"npx next dev --turbopack -H 0.0.0.0 -p {SANDBOX_APP_PORT}"
)
# Seconds to wait for the dev server to answer on the app port
SANDBOX_READY_TIMEOUT: int = int(os.getenv("SANDBOX_READY_TIMEOUT", "120"))

# Credits
FREE_POINTS: int = 5
PRO_POINTS: int = 20
USAGE_DURATION_SECONDS: int = 30 * 24 * 60 * 60
GENERATION_COST: int = 1

STREAM_TOKEN_SECRET: str = os.getenv(
    "STREAM_TOKEN_SECRET", os.getenv("JWT_SECRET", "dev-secret")
)
STREAM_TOKEN_TTL_SECONDS: int = int(os.getenv("STREAM_TOKEN_TTL_SECONDS", "3600"))

STEP_MAX_ATTEMPTS: int = int(os.getenv("STEP_MAX_ATTEMPTS", "3"))

RUN_STORE_TTL_SECONDS: int = int(os.getenv("RUN_STORE_TTL_SECONDS", "900"))
RUN_STORE_NAMESPACE: str = os.getenv("RUN_STORE_NAMESPACE", "neo-runs")

VERCEL_OAUTH_CLIENT_ID: str | None = os.getenv("VERCEL_OAUTH_CLIENT_ID")
VERCEL_OAUTH_CLIENT_SECRET: str | None = os.getenv("VERCEL_OAUTH_CLIENT_SECRET")

MAX_MESSAGE_LENGTH: int = 10_000
