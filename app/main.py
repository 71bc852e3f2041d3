from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import bookings, documents
from app.services.errors import (
    ActorNotPermitted,
    BookingRuleError,
    InvalidRequest,
    MalformedEvent,
)

# ⭐ Import logging system
from app.core.logging_config import get_logger

logger = get_logger()

app = FastAPI(
    title="Rental Booking API",
    version="1.0.0",
    description="Booking lifecycle, return requests, issues and payment reconciliation"
)


# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url.path}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url.path} -> {str(e)}")
        raise e


# ⭐ Booking rule violations → inline messages for the UI
@app.exception_handler(BookingRuleError)
async def booking_rule_error_handler(request: Request, exc: BookingRuleError):
    if isinstance(exc, ActorNotPermitted):
        status_code = 403
    elif isinstance(exc, (InvalidRequest, MalformedEvent)):
        status_code = 400
    else:
        status_code = 409

    logger.info(f"RULE: {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


# ⭐ CORS (important for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Can restrict later for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS --------
app.include_router(bookings.router)
app.include_router(documents.router)


@app.get("/", tags=["Root"])
def root():
    return {"message": "Backend running successfully"}
