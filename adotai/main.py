import logging
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from adotai.config import settings
from adotai.core.capabilities import ViewCapabilities
from adotai.core.dependencies import get_auth_service
from adotai.core.errors import is_schema_missing
from adotai.database.supabase_client import get_supabase
from adotai.modules.auth.service import AuthService
from adotai.modules.users import routes as users_routes
from adotai.modules.auth import routes as auth_routes
from adotai.modules.animals import routes as animals_routes
from adotai.modules.adoption_requests import routes as adoption_requests_routes
from adotai.modules.conversations import routes as conversations_routes
from adotai.modules.messaging import routes as messaging_routes
from adotai.modules.reports import routes as reports_routes
from adotai.modules.admin import routes as admin_routes

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


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


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
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(users_routes.router, prefix="/api/v1")
app.include_router(animals_routes.router, prefix="/api/v1")
app.include_router(adoption_requests_routes.router, prefix="/api/v1")
app.include_router(conversations_routes.router, prefix="/api/v1")
app.include_router(messaging_routes.router, prefix="/api/v1")
app.include_router(reports_routes.router, prefix="/api/v1")
app.include_router(admin_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    try:
        views = ViewCapabilities.probe(
            get_supabase(), [settings.animals_view, settings.adoption_requests_view]
        )
        logger.info(f"Read views: {views}")
    except Exception as e:
        # Probed lazily on first query instead
        logger.warning(f"Could not probe read views at startup: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to adotai-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready(auth_service: AuthService = Depends(get_auth_service)):
    """Readiness probe: the backend is reachable and the schema exists."""
    try:
        auth_service.initialize_data()
    except HTTPException as e:
        setup_needed = is_schema_missing(e.__cause__ or e)
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "setup_needed": setup_needed, "detail": e.detail}
        )
    return {"status": "ready"}


def run():
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
