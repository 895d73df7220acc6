from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from leader_router.config import settings
from leader_router.errors import RoutingError
from leader_router.geo_table import GeoTable
from leader_router.logging_config import configure_logging
from leader_router.models import ErrorResponse, HealthResponse, RoutingResult
from leader_router.routing import route_current_leader
from leader_router.rpc import ChainRpcClient
from leader_router.metrics import (
    routing_requests_total, routing_stage_failures_total,
    routing_duration, routing_region_total, geo_table_records,
    get_metrics, get_content_type, Timer
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan"""
    # Startup: a missing or malformed table is fatal, never serve without it
    configure_logging(settings.log_level)
    app.state.geo_table = GeoTable.load(settings.geo_table_path)
    geo_table_records.set(len(app.state.geo_table))
    app.state.rpc = ChainRpcClient(settings.rpc_url, timeout=settings.rpc_timeout)
    logger.info("Leader router started (%s, rpc=%s)", settings.environment, settings.rpc_url)

    yield

    # Shutdown
    await app.state.rpc.close()
    logger.info("Leader router stopped")

app = FastAPI(
    title="Leader Geo Router",
    description="Routes requests to the region closest to the current slot leader",
    version="1.0.0",
    lifespan=lifespan
)

@app.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Health check"""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        rpc_url=settings.rpc_url,
        geo_table_records=len(request.app.state.geo_table)
    )

@app.api_route(
    "/route",
    methods=["GET", "POST"],
    response_model=RoutingResult,
    responses={500: {"model": ErrorResponse}}
)
async def route(request: Request):
    """Closest region to the current slot leader; takes no parameters"""
    with Timer() as timer:
        try:
            result = await route_current_leader(
                request.app.state.rpc, request.app.state.geo_table
            )
        except RoutingError as e:
            logger.warning("Routing failed at %s: %s", e.stage, e.details)
            routing_requests_total.labels(status="error").inc()
            routing_stage_failures_total.labels(stage=e.stage).inc()
            return JSONResponse(status_code=e.code, content=e.to_error_response())

    routing_duration.observe(timer.duration)
    routing_requests_total.labels(status="ok").inc()
    routing_region_total.labels(region=result.closest_region.value).inc()
    return result

@app.get("/metrics")
async def metrics_endpoint():
    """Prometheus metrics endpoint"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(content=get_metrics(), media_type=get_content_type())
