"""
Ingress Operator — Status API

Sets up FastAPI with:
  - Prometheus metrics (/metrics) from the reconciliation loop
  - Health check (/health)
  - IngressController views (/api/ingresscontrollers)
  - ClusterOperator view (/api/operator-status)

Normally served from inside the operator process (see start_in_background);
can also run standalone against a kubeconfig with
``python -m ingress_operator.main``.
"""

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import __version__
from .config import Settings, settings
from .routers.ingresscontrollers import router as ingresscontrollers_router, status_router
from .services.object_store import KubernetesObjectStore, ObjectStore

logger = logging.getLogger("ingress-operator.api")


# --- Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Ingress Operator status API starting...")
    if getattr(app.state, "store", None) is None:
        app.state.store = KubernetesObjectStore(settings)
    yield
    logger.info("Ingress Operator status API shutting down...")


# --- FastAPI app ---
app = FastAPI(
    title="Ingress Operator Status API",
    description="Read-only status of IngressControllers managed by the ingress operator",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.include_router(ingresscontrollers_router, prefix="/api")
app.include_router(status_router, prefix="/api")


# --- Health check ---
@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "version": settings.RELEASE_VERSION,
    }


# --- Prometheus metrics endpoint ---
@app.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    """Expose Prometheus metrics."""
    return PlainTextResponse(
        content=generate_latest().decode("utf-8"),
        media_type=CONTENT_TYPE_LATEST,
    )


# --- Global exception handler ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


def start_in_background(store: ObjectStore, config: Settings = settings) -> threading.Thread:
    """Serve the API from a daemon thread, sharing the operator's object store."""
    app.state.store = store
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower(),
    ))
    thread = threading.Thread(target=server.run, name="status-api", daemon=True)
    thread.start()
    logger.info(f"status API listening on {config.API_HOST}:{config.API_PORT}")
    return thread


# --- Entry point ---
if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
