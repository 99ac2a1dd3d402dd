from __future__ import annotations  # FastAPI server exposing whitelist administration

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config.settings import settings
from observability import configure_logging
from storage.migrate import migrate


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):  # Ensure the schema exists before serving
    configure_logging()
    migrate(settings.DB_PATH)
    logger.info("database ready at %s", settings.DB_PATH)
    yield


app = FastAPI(title="Whitelist Admin API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(router)


@app.get("/api/health")
def health() -> Dict[str, str]:  # Liveness probe
    return {"status": "ok"}
