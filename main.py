# backend/main.py

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import LOG_DATEFMT, LOG_FORMAT, settings
from db import engine, Base

# IMPORT MODELS so that create_all() sees them
import models  # noqa: F401

from errors import register_error_handlers
from auth import router as auth_router
from chat_router import router as chat_router
from image_router import router as image_router
from tools_router import router as tools_router

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
logger = logging.getLogger("falcon")

missing = settings.missing_keys()
if missing:
    logger.warning("Not set in .env: %s (dependent endpoints will fail)", ", ".join(missing))

# Create tables (users)
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Falcon AI Chat Backend")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
)
register_error_handlers(app)

@app.get("/api/health")
def health():
    return {"ok": True}

app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(image_router)
app.include_router(tools_router)


def run():
    """Entry point for the ``falcon-server`` script."""
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=False)
