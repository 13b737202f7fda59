import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session as DBSession


from . import config
from .db import get_session, init_db
from .errors import log_error, register_error_handlers
from .routers import (
    auth as auth_router,
    exercises,
    workout_exercises,
    workout_sets,
    workouts,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    logger.info("Fitness tracker API ready (env=%s)", config.ENVIRONMENT)
    yield


app = FastAPI(title="Fitness Tracker", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# ---- Metrics ----
REQUEST_COUNT = Counter(
   "http_requests_total",
   "Total HTTP requests",
   ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
   "http_request_latency_seconds",
   "Request latency",
   ["method", "path"],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
   start = time.perf_counter()
   response = await call_next(request)
   # label by route template so ids do not explode cardinality
   route = request.scope.get("route")
   path = getattr(route, "path", request.url.path)
   method = request.method
   REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
   REQUEST_LATENCY.labels(method=method, path=path).observe(time.perf_counter() - start)
   return response


# ---- APIs ----
app.include_router(auth_router.router)  # uses /api/auth/*
app.include_router(exercises.router)
app.include_router(workouts.router)
app.include_router(workout_exercises.router)
app.include_router(workout_sets.router)


# ---- Health & Metrics ----
@app.get("/health")
def health(db: DBSession = Depends(get_session)):
   try:
       db.execute(text("SELECT 1"))
   except SQLAlchemyError as e:
       log_error("Health check database probe failed", e)
       return JSONResponse(
           status_code=503,
           content={"status": "error", "database": "disconnected"},
       )
   return {"status": "ok", "database": "connected"}


@app.get("/metrics")
def metrics():
   data = generate_latest()  # type: ignore
   return PlainTextResponse(data.decode("utf-8"), media_type=CONTENT_TYPE_LATEST)
