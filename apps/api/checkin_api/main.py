from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import configure_logging, get_config
from .errors import install_error_handlers
from .routes import assistant as assistant_routes
from .routes import checkins as checkin_routes
from .routes import diagnostics as diagnostics_routes
from .routes import otp as otp_routes

CONFIG = get_config()
configure_logging(CONFIG.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Check-in API",
    version="0.1.0",
    description="Passwordless sign-in and child check-in tracking",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CONFIG.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "content-type"],
    allow_credentials=False,
)

install_error_handlers(app)

app.include_router(otp_routes.router)
app.include_router(checkin_routes.router)
app.include_router(assistant_routes.router)
app.include_router(diagnostics_routes.router)


@app.get("/")
async def root() -> dict:
    return {"message": "Check-in API ready"}


logger.info("check-in api started", extra={"public_access": CONFIG.allow_public_access})
