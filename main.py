from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import uvicorn

from database import engine, Base, settings
from errors import DomainError, InternalError
from routers import events, fests, maintenance, registrations, users

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up ({settings.ENVIRONMENT})")
    yield
    logger.info("Shutting down")

app = FastAPI(
    title="SOCIO API",
    description="Campus events and fests: events, fests, users and registrations",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_origin_regex=r"https://.*\.vercel\.app",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid value for {location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request."
    return JSONResponse(status_code=400, content={"error": message})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error in {request.method} {request.url.path}")
    error = InternalError("Internal server error")
    return JSONResponse(status_code=error.status_code, content={"error": error.message})

# Include routers
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
app.include_router(fests.router, prefix="/api/fests", tags=["fests"])
app.include_router(registrations.router, prefix="/api", tags=["registrations"])
app.include_router(maintenance.router, prefix="/api", tags=["maintenance"])

@app.get("/")
async def root():
    return {"message": "SOCIO API Server", "version": "1.0.0"}

@app.get("/api/health")
async def health_check():
    return {"status": "Server is running", "timestamp": datetime.now(timezone.utc).isoformat()}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
