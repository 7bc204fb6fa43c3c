import logging

from fastapi import FastAPI

from hanbingo.api.routes import router

app = FastAPI(title="hanbingo", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "hanbingo", "version": "0.1.0"}
