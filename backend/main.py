"""
Sanitation Planning Engine - FastAPI application entry point.
"""
import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from api.dependencies import get_settings
from api.routes import router

app = FastAPI(
    title="Sanitation Planning Engine",
    description="Open-defecation simulation and toilet siting for informal settlements",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    settings = get_settings()
    return {
        "name": "Sanitation Planning Engine",
        "version": "1.0.0",
        "place": settings.place_name,
        "status": "operational",
        "docs": "/docs",
    }


@app.on_event("startup")
async def startup():
    settings = get_settings()
    logger.info("Sanitation Planning Engine starting up...")
    logger.info(
        f"Study area {settings.place_name}: lat [{settings.study_area.min_lat}, {settings.study_area.max_lat}], "
        f"lon [{settings.study_area.min_lon}, {settings.study_area.max_lon}]"
    )
    logger.info(f"Geodata cache at {settings.cache_dir} (version {settings.geodata_version})")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
