from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import BookingError
from app.core.rules import describe_rules
from app.api import bookings, admin
from app.api.dependencies import get_booking_service
from app.core.logger import setup_logging, logger
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: open the store early so a bad DATA_FILE fails fast
    store = get_booking_service().store
    logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT}), store: {store.path}")
    yield
    logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="2.0.0",
    lifespan=lifespan
)

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.opt(exception=exc).error(f"❌ {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"⛔ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "message": exc.message},
        headers={"Cache-Control": "no-store"},
    )

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"ok": False, "message": "Internal Server Error"}
    )

app.include_router(bookings.router, prefix=settings.API_PREFIX, tags=["Bookings"])
app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["Admin"])

@app.get(f"{settings.API_PREFIX}/spec")
async def api_spec():
    return {"ok": True, **describe_rules(settings.API_PREFIX)}

@app.get("/health")
async def health_check():
    return {"ok": True, "status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, reload=settings.ENVIRONMENT == "development")
