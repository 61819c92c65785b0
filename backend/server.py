import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# neo.config loads .env before the agents SDK is configured
from neo import config
from neo.agent.agent import configure_llm_client
from neo.api.auth import router as auth_router
from neo.api.fragments import router as fragments_router
from neo.api.projects import router as projects_router
from neo.api.runs import router as runs_router
from neo.api.usage import router as usage_router
from neo.db.engine import init_db
from neo.usage import RateLimitExceeded

# Basic logger for server diagnostics (inherits uvicorn handlers)
logger = logging.getLogger("neo.server")
if not logger.handlers:
    logger.setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    configure_llm_client()
    logger.info("server ready production=%s", config.IS_PRODUCTION)
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": str(exc),
            "ms_before_next": exc.result.ms_before_next,
        },
    )


app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(fragments_router)
app.include_router(usage_router)
app.include_router(runs_router)


@app.get("/api/models")
async def list_models() -> dict[str, Any]:
    """Return the models this server is configured to use."""
    return {"models": list(config.ALLOWED_MODELS), "default": config.CODE_AGENT_MODEL}


@app.get("/")
def read_root():
    return {"Hello": "Neo"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8081)
