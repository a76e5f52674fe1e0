import uuid

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from .env file before settings are read
load_dotenv()

from app.config import get_settings
from app.dependencies import get_quota_gate, seed_api_keys
from app.routers import (
    admin_router,
    download_router,
    formats_router,
    redirect_router,
    search_router,
    usage_router,
)
from app.utils.logging_utils import setup_logger
from scripts.temp_cleanup_scheduler import start_scheduler, stop_scheduler

settings = get_settings()
logger = setup_logger()

app = FastAPI(title="YouTube Search & Download API")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.allowed_origin],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept", "X-API-Key", "X-Admin-Key"],
    expose_headers=[
        "X-Request-ID",
        "X-RateLimit-Tier",
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
    ],
)


@app.middleware("http")
async def attach_request_context(request: Request, call_next):
    """Assign a request ID and emit the quota gate's rate-limit headers on gated responses."""
    request.state.request_id = uuid.uuid4().hex[:8]
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    rate_limit = getattr(request.state, "rate_limit", None)
    if rate_limit is not None:
        response.headers.update(rate_limit.rate_limit_headers())
    return response


app.include_router(search_router)
app.include_router(formats_router)
app.include_router(download_router)
app.include_router(redirect_router)
app.include_router(usage_router)
app.include_router(admin_router)


@app.on_event("startup")
async def startup_event():
    """Issue seed API keys and start the temp cleanup scheduler."""
    print("INFO: Starting application...")

    try:
        issued = seed_api_keys(get_quota_gate(), settings.seed_api_keys)
        if issued:
            print(f"INFO: Issued {issued} seed API key(s)")
    except ValueError as e:
        print(f"WARNING: Invalid SEED_API_KEYS ({str(e)}) - no seed keys issued")

    if settings.temp_cleanup_enabled:
        try:
            start_scheduler()
        except Exception as e:
            print(f"WARNING: Failed to start temp cleanup scheduler: {str(e)}")
            print("WARNING: Stale temp files will not be removed automatically")


@app.on_event("shutdown")
async def shutdown_event():
    print("INFO: Shutting down application...")
    if settings.temp_cleanup_enabled:
        try:
            stop_scheduler()
        except Exception as e:
            print(f"WARNING: Error stopping temp cleanup scheduler: {str(e)}")


@app.get("/")
async def root():
    """Service banner with the endpoint map."""
    return {
        "success": True,
        "message": "YouTube Download API",
        "authentication": "Send your API key as the X-API-Key header or the apikey query parameter",
        "endpoints": {
            "search": "/search?q=query",
            "formats": "/formats/[video-id]",
            "download": {
                "mp4": "/download/mp4?id=[video-id]&quality=[quality]",
                "mp3": "/download/mp3?id=[video-id]&bitrate=[128|192|320]"
            },
            "stream": "/stream/audio/[video-id]",
            "redirect": "/redirect/[service]?id=[video-id]",
            "usage": "/usage"
        },
        "examples": {
            "search": "GET /search?q=coldplay",
            "download_mp3": "GET /download/mp3?id=dQw4w9WgXcQ"
        }
    }


@app.get("/health")
async def health():
    return {"status": "ok"}
