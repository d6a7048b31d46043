"""FastAPI web server for followdiff."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from followdiff import FollowerTracker, TrackerConfig, __version__
from followdiff.core.router import MessageRouter
from followdiff.exceptions import SnapshotNotFoundError, SnapshotValidationError


# Request/Response models
class ScanRequest(BaseModel):
    """Request body for starting a scan."""

    target_user: Optional[str] = Field(
        default=None,
        description="Profile handle to scan (without @). "
        "Sending a scan request while one is running cancels the running scan.",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


class ConfigResponse(BaseModel):
    """Scan pacing and retention settings in effect."""

    scroll_step_px: int = Field(..., description="Pixels scrolled per cycle.")
    settle_delay_ms: int = Field(..., description="Wait after each scroll before checking progress.")
    stall_threshold: int = Field(
        ...,
        description="Consecutive cycles without scroll movement that mark the end of the list.",
    )
    asset_batch_size: int = Field(..., description="Profile pictures downloaded concurrently.")
    max_snapshots: int = Field(..., description="Snapshots kept before the oldest is evicted.")
    store_backend: str = Field(
        ...,
        description="Snapshot storage. Options: 'sqlite', 'redis', 'memory'.",
        json_schema_extra={"enum": ["sqlite", "redis", "memory"]},
    )


# Global tracker instance
_tracker: Optional[FollowerTracker] = None
_router: Optional[MessageRouter] = None


def _get_tracker() -> FollowerTracker:
    if _tracker is None:
        raise HTTPException(status_code=503, detail="Tracker not initialized")
    return _tracker


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage tracker lifecycle."""
    global _tracker, _router
    _tracker = FollowerTracker(TrackerConfig())
    await _tracker.__aenter__()
    _router = MessageRouter(_tracker)
    yield
    await _tracker.__aexit__(None, None, None)
    _tracker = None
    _router = None


app = FastAPI(
    title="followdiff API",
    description="Follower list snapshots and diffs",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
    )


@app.get("/api/config", response_model=ConfigResponse, tags=["System"])
async def get_config():
    """
    Get the active configuration.

    Settings come from environment variables with the `FOLLOWDIFF_` prefix,
    e.g. `FOLLOWDIFF_STORE_BACKEND=redis` or `FOLLOWDIFF_MAX_SNAPSHOTS=20`.
    """
    config = _get_tracker().config
    return ConfigResponse(
        scroll_step_px=config.scroll_step_px,
        settle_delay_ms=config.settle_delay_ms,
        stall_threshold=config.stall_threshold,
        asset_batch_size=config.asset_batch_size,
        max_snapshots=config.max_snapshots,
        store_backend=config.store_backend.value,
    )


@app.post("/api/scan", tags=["Scanning"])
async def start_scan(request: ScanRequest):
    """Start a background scan, or cancel the running one."""
    return _get_tracker().start_scan(request.target_user)


@app.post("/api/scan/cancel", tags=["Scanning"])
async def cancel_scan():
    """Stop the running scan; whatever was collected is still saved."""
    return _get_tracker().cancel_scan()


@app.get("/api/scan/status", tags=["Scanning"])
async def scan_status():
    """Current scan state and latest progress update."""
    return _get_tracker().scan_status()


@app.get("/api/snapshots", tags=["Snapshots"])
async def list_snapshots():
    snapshots = await _get_tracker().list_snapshots()
    return {"snapshots": [s.to_storage() for s in snapshots]}


@app.delete("/api/snapshots/{timestamp}", tags=["Snapshots"])
async def delete_snapshot(timestamp: int):
    try:
        remaining = await _get_tracker().delete_snapshot(timestamp)
    except SnapshotNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"snapshots": [s.to_storage() for s in remaining]}


@app.get("/api/diff", tags=["Snapshots"])
async def get_diff(
    older: int = Query(..., description="Timestamp of the older snapshot"),
    newer: int = Query(..., description="Timestamp of the newer snapshot"),
):
    """Compare two stored snapshots."""
    try:
        diff = await _get_tracker().diff(older, newer)
    except SnapshotNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"diff": diff.model_dump(by_alias=True)}


@app.post("/api/import", tags=["Snapshots"])
async def import_snapshots(data: Any = Body(...)):
    """
    Import an export file.

    Accepts a JSON array of snapshots or `{"snapshots": [...]}`. Snapshots
    whose timestamp is already stored are skipped.
    """
    try:
        result = await _get_tracker().import_data(data)
    except SnapshotValidationError as e:
        raise HTTPException(status_code=422, detail=e.reason)
    return result.model_dump()


@app.get("/api/export", tags=["Snapshots"])
async def export_snapshots(
    strip_images: bool = Query(False, description="Replace profile pictures with empty strings"),
):
    return await _get_tracker().export(strip_images)


@app.post("/api/messages", tags=["Messaging"])
async def post_message(message: dict = Body(...)):
    """Raw message channel: `{"type": ..., ...payload}` in, response dict out."""
    if _router is None:
        raise HTTPException(status_code=503, detail="Tracker not initialized")
    return await _router.handle(message)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
