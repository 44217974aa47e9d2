import logging
from fastapi import FastAPI
from . import config
from .learn.api import router as learn_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Sketchcoach Learn Engine")
app.include_router(learn_router)


@app.get("/health")
def health():
    return {"status": "ok"}
