"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onopay import __version__
from onopay.api.endpoints.payments import payments_api

# Setup logging
_debug = os.getenv("ONOPAY_DEBUG_MODE", "").lower() in ("1", "true", "yes")
logging.basicConfig(
    level=logging.DEBUG if _debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Onopay Gateway API",
    description="Checksum-guarded Onopay payment gateway integration (INR)",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register payments API router
app.include_router(payments_api, prefix="/api/v1/payments", tags=["Payments"])


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
