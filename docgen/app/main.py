import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docgen.app.api.generate import router as generate_router
from docgen.app.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title="docgen",
    description="Template-driven document generation service",
    version="0.1.0",
)

app.include_router(generate_router, prefix="/generate")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", summary="Liveness check")
def health() -> dict:
    return {"status": "ok"}
