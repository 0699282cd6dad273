"""FastAPI HTTP API for ship-log map search.

Endpoints:
    GET    /v1/health                    -- Health check
    GET    /v1/maps                      -- Indexed and discoverable maps
    PUT    /v1/maps/{map_id}             -- Upload a map document and rebuild its index
    DELETE /v1/maps/{map_id}             -- Drop a map's index
    GET    /v1/maps/{map_id}/suggest     -- Autocomplete suggestions
    GET    /v1/maps/{map_id}/search      -- Resolve a query to node / edge ids
    GET    /metrics                      -- Prometheus text exposition

Maps are read lazily from ``{maps_dir}/{map_id}.json`` on first access.

Run: ``python -m shiplog_search.api``
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from .config import EXTRACTORS, Config, load_config
from .document import parse_map
from .engine import SearchEngine
from .extractors import get_extractor
from .hashtags import tokenize_query
from .metrics import render_prometheus_metrics
from .middleware import APIKeyMiddleware, AuditLogMiddleware
from .pool import MapPool
from .suggest import detect_mode

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared state (initialised in lifespan)
# ---------------------------------------------------------------------------

_pool: Optional[MapPool] = None
_config: Optional[Config] = None
_start_time: float = 0.0


def _get_engine(map_id: str) -> SearchEngine:
    """Get the SearchEngine for the given map."""
    if _pool is None:
        raise HTTPException(503, "Map pool not initialised")
    try:
        return _pool.get(map_id)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    except KeyError:
        raise HTTPException(404, f"Unknown map '{map_id}'")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown logic."""
    global _pool, _config, _start_time

    _config = load_config()
    errors = _config.validate()
    if errors:
        logger.warning("Config validation warnings: %s", errors)

    _pool = MapPool(
        maps_dir=_config.maps_dir,
        extractor=get_extractor(_config.extractor) if _config.extractor in EXTRACTORS else None,
        suggestion_limit=max(1, _config.suggestion_limit),
    )
    _start_time = time.time()

    logger.info(
        "Search API ready -- maps_dir=%s discovered=%d",
        _config.maps_dir, len(_pool.discover()),
    )

    yield

    # Shutdown
    if _pool:
        _pool.close_all()


app = FastAPI(
    title="Ship Log Search API",
    version="0.1.0",
    lifespan=lifespan,
)

# --- Middleware (order matters: last added = first to run) ---
_startup_config = load_config()
if _startup_config.api_key:
    app.add_middleware(APIKeyMiddleware, api_key=_startup_config.api_key)
    logger.info("API key authentication enabled")
else:
    logger.warning("No SHIPLOG_SEARCH_API_KEY set -- API is UNAUTHENTICATED")

# Audit logging + request metrics (runs on every request)
app.add_middleware(AuditLogMiddleware)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class MapUploadRequest(BaseModel):
    mapName: Optional[str] = None
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)
    notes: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/v1/health")
async def health() -> Dict[str, Any]:
    """Health check."""
    return {
        "status": "ok" if _pool is not None else "down",
        "uptime_seconds": round(time.time() - _start_time, 1),
        "maps_loaded": len(_pool.map_ids()) if _pool else 0,
    }


@app.get("/v1/maps")
async def list_maps() -> Dict[str, Any]:
    """List maps with a built index plus map files not yet loaded."""
    if _pool is None:
        raise HTTPException(503, "Map pool not initialised")
    loaded = _pool.map_ids()
    return {
        "loaded": [_pool.get(m).stats() for m in loaded],
        "available": [m for m in _pool.discover() if m not in loaded],
    }


@app.put("/v1/maps/{map_id}")
async def upload_map(map_id: str, req: MapUploadRequest) -> Dict[str, Any]:
    """Replace a map's entities and rebuild its index from scratch."""
    if _pool is None:
        raise HTTPException(503, "Map pool not initialised")

    data: Dict[str, Any] = {"nodes": req.nodes, "edges": req.edges, "notes": req.notes}
    if req.mapName is not None:
        data["mapName"] = req.mapName
    try:
        document = parse_map(data)
        engine = _pool.load(map_id, document)
    except ValueError as exc:
        raise HTTPException(400, str(exc))

    return engine.stats()


@app.delete("/v1/maps/{map_id}")
async def delete_map(map_id: str) -> Dict[str, Any]:
    """Drop a map's index (the map file, if any, is left untouched)."""
    if _pool is None:
        raise HTTPException(503, "Map pool not initialised")
    try:
        removed = _pool.remove(map_id)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"deleted": removed, "map": map_id}


@app.get("/v1/maps/{map_id}/suggest")
async def suggest_endpoint(
    map_id: str,
    q: str = Query(default=""),
    limit: Optional[int] = Query(default=None, ge=1),
) -> Dict[str, Any]:
    """Autocomplete suggestions for an in-progress query."""
    engine = _get_engine(map_id)
    if limit is not None and _config is not None:
        limit = min(limit, _config.max_suggestion_limit)
    suggestions = engine.suggest(q, limit=limit)
    return {
        "query": q,
        "mode": detect_mode(q).value,
        "count": len(suggestions),
        "suggestions": suggestions,
    }


@app.get("/v1/maps/{map_id}/search")
async def search_endpoint(
    map_id: str,
    q: str = Query(default=""),
) -> Dict[str, Any]:
    """Resolve a submitted query to matching node and edge ids."""
    engine = _get_engine(map_id)
    matches = engine.search(q)
    out: Dict[str, Any] = {"query": q, "tokens": tokenize_query(q)}
    out.update(matches.to_dict())
    return out


@app.get("/metrics", response_class=PlainTextResponse)
async def prometheus_metrics() -> str:
    """Prometheus text exposition."""
    return render_prometheus_metrics()


# ---------------------------------------------------------------------------
# CLI entry-point
# ---------------------------------------------------------------------------

def main() -> None:
    """Run the API server via uvicorn."""
    import uvicorn

    cfg = load_config()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    logger.info("Starting Ship Log Search API on %s:%d", cfg.api_host, cfg.api_port)
    uvicorn.run(
        "shiplog_search.api:app",
        host=cfg.api_host,
        port=cfg.api_port,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
