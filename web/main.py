from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.env import env_str
from core.logging import setup_logging
from web import routers
from web.background.status_sweep import start_status_sweep, stop_status_sweep
from web.deps import get_backend_settings, get_status_synchronizer

setup_logging()

app = FastAPI(
    title="XtreamSales Subscription API",
    description="Plan catalog, subscription lifecycle and status reconciliation for resellers and clients.",
    version="0.1.0",
)

origins = [origin.strip() for origin in (env_str("CORS_ALLOW_ORIGINS", "http://localhost:5173") or "").split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", summary="Health Check", tags=["Default"])
def health_check():
    """Basic liveness probe."""
    return {"status": "ok", "message": "XtreamSales Subscription API is running."}


app.include_router(routers.health.router, prefix="/api/v1")
app.include_router(routers.plan.router, prefix="/api/v1")
app.include_router(routers.subscriptions.router, prefix="/api/v1")


@app.on_event("startup")
async def launch_background_jobs() -> None:
    """Start the periodic status sweep when an interval is configured."""
    start_status_sweep(get_status_synchronizer, get_backend_settings().sweep_interval_seconds)


@app.on_event("shutdown")
async def stop_background_jobs() -> None:
    await stop_status_sweep()
