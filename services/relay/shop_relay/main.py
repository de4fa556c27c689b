import logging

from fastapi import FastAPI

from .api.proxy import router as proxy_router
from .config import get_settings
from .database import create_schema

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Shop Relay API", version="0.1.0")


@app.on_event("startup")
def _create_schema() -> None:
    create_schema()


@app.get("/healthz", tags=["health"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(proxy_router)
