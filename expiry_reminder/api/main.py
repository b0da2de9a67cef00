"""FastAPI trigger for the reminder sweep."""
import asyncio
import logging
from datetime import datetime
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel

from expiry_reminder.config import config
from expiry_reminder.jobs.metrics_exporter import read_recent_metrics
from expiry_reminder.jobs.runner import SweepRunner, build_runner

logger = logging.getLogger(__name__)

app = FastAPI(title="Expiry Reminder API", version="0.1.0")

# API Key security (if configured)
API_KEY_HEADER = APIKeyHeader(name="X-API-KEY", auto_error=False)

# One sweep at a time per process
_sweep_lock = asyncio.Lock()


def verify_api_key(api_key: Optional[str] = Depends(API_KEY_HEADER)) -> bool:
    """Verify API key if configured."""
    expected_key = config.API_KEY
    if expected_key:
        if not api_key or api_key != expected_key:
            raise HTTPException(status_code=403, detail="Invalid API key")
    return True


@lru_cache(maxsize=1)
def get_runner() -> SweepRunner:
    return build_runner(config)


@app.on_event("startup")
async def startup():
    """Fail fast on missing configuration."""
    config.validate()


class RunJobResponse(BaseModel):
    """Response model for a triggered sweep."""
    message: str
    status: str
    run_date: str
    matched: int
    sent: int
    failed: int


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Expiry Reminder is alive!"


@app.get("/health")
async def health(runner: SweepRunner = Depends(get_runner)):
    """Health check endpoint (no auth required)."""
    store = runner.product_store
    connected = None
    if hasattr(store, "test_connection"):
        connected = await store.test_connection()
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "store_connected": connected,
    }


@app.get("/run-job", response_model=RunJobResponse)
async def run_job(
    runner: SweepRunner = Depends(get_runner),
    _: bool = Depends(verify_api_key),
):
    """Run one reminder sweep."""
    if _sweep_lock.locked():
        raise HTTPException(status_code=409, detail="Reminder job already running")

    async with _sweep_lock:
        try:
            result = await runner.run()
        except Exception as e:
            logger.error(f"Reminder job failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Reminder job failed")

    return RunJobResponse(
        message="Reminder job executed",
        status=result.status,
        run_date=result.run_date,
        matched=result.matched,
        sent=result.sent,
        failed=result.failed,
    )


@app.get("/metrics")
async def get_metrics(_: bool = Depends(verify_api_key)):
    """Get recent sweep metrics (requires API key if configured)."""
    return {"metrics": read_recent_metrics()}


def main() -> None:
    import uvicorn
    from expiry_reminder.logging_conf import setup_logging

    setup_logging()
    config.validate()
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    main()
