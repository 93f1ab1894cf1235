import logging

from fastapi import FastAPI

from config import LOG_FORMAT, LOG_LEVEL
from rotation.router import router as rotation_router

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

app = FastAPI(title="Doubles Rotation Scheduler")
app.include_router(rotation_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
