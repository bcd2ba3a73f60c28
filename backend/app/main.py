import logging

from fastapi import FastAPI
from redis.exceptions import RedisError

from .config import settings
from .redis_client import redis_client
from .routers import lesson_admin, lessons

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Club Lessons API")

app.include_router(lessons.router)
app.include_router(lesson_admin.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        redis_ok = False
    return {"redis": redis_ok}
