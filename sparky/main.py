import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from sparky.config import settings
from sparky.core.responses import error_response
from sparky.database.vimeo_client import VimeoAPIError, reset_vimeo
from sparky.modules.auth import routes as auth_routes
from sparky.modules.profiles import routes as profiles_routes
from sparky.modules.assignments import routes as assignments_routes
from sparky.modules.folders import routes as folders_routes
from sparky.modules.videos import routes as videos_routes
from sparky.modules.debug import routes as debug_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def describe_validation_error(exc: RequestValidationError) -> str:
    """First validation problem as a sentence, e.g. "folderName is required" """
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = next((str(part) for part in reversed(first.get("loc", ())) if not isinstance(part, int)), "body")
    if first.get("type") == "missing":
        return f"{field} is required"
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    return f"{field}: {first.get('msg', 'invalid value')}"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(400, describe_validation_error(exc))


@app.exception_handler(VimeoAPIError)
async def vimeo_exception_handler(request: Request, exc: VimeoAPIError):
    logger.error("Vimeo error on %s %s: %s (%s)", request.method, request.url.path, exc.message, exc.status_code)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return error_response(500, "Internal server error")
    return error_response(500, str(exc))


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api")
app.include_router(profiles_routes.router, prefix="/api")
app.include_router(assignments_routes.router, prefix="/api")
app.include_router(folders_routes.router, prefix="/api")
app.include_router(folders_routes.admin_router, prefix="/api")
app.include_router(videos_routes.router, prefix="/api")
app.include_router(debug_routes.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    if not settings.vimeo_access_token:
        logger.warning("VIMEO_ACCESS_TOKEN not set; folder and video routes will fail")


@app.on_event("shutdown")
async def shutdown_event():
    reset_vimeo()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to the Sparky Screen Recorder API", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: extend here with Supabase/Vimeo checks if needed."""
    return {"status": "ready"}
