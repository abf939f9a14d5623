import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware

from backend.app.api.v1.router import api_router
from backend.app.core.config import settings
from backend.app.core.errors import LegacyError
from backend.app.db import init_models
from backend.app.integrations.captions import GeminiCaptionGenerator, NullCaptionGenerator
from backend.app.integrations.storage import LocalBlobStorage

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_caption_generator():
    if settings.GEMINI_API_KEY:
        return GeminiCaptionGenerator(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            timeout=settings.CAPTION_TIMEOUT_SECONDS,
        )
    logger.info("GEMINI_API_KEY not set, AI captions disabled")
    return NullCaptionGenerator()


# --- LIFESPAN: create tables and collaborators at startup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    app.state.storage = LocalBlobStorage(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_URL)
    app.state.captioner = build_caption_generator()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(LegacyError)
async def legacy_error_handler(request: Request, exc: LegacyError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(api_router, prefix=settings.API_V1_STR)

app.mount(settings.STORAGE_PUBLIC_URL, StaticFiles(directory=settings.STORAGE_DIR, check_dir=False), name="files")


@app.get("/")
def root():
    return {"message": "Welcome to the Legacy API"}


@app.get("/health")
def health_check():
    return {"message": "healthy"}
