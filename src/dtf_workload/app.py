import asyncio
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from time import perf_counter

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, PositiveInt

from dtf_workload.config import SimConfig, load_config
from dtf_workload.oplog import OperationLog
from dtf_workload.workload import Workload

log = logging.getLogger("dtf_workload.app")

TIMEOUT = 3.0


class StartRequest(BaseModel):
    operations: PositiveInt | None = None  # overrides operations.number for this run


class WorkloadStatus(BaseModel):
    running: bool
    error: str | None = None
    stats: dict
    uptime_seconds: float = 0


async def _probe_rpc(url: str, max_retries: int = 30, retry_delay: float = 2.0) -> None:
    """Probe the JSON-RPC endpoint with retries until it answers eth_chainId."""
    payload = {"jsonrpc": "2.0", "id": 1, "method": "eth_chainId", "params": []}

    for attempt in range(1, max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=TIMEOUT) as http:
                r = await http.post(url, json=payload)
                r.raise_for_status()
                log.info("RPC endpoint responding (attempt %s/%s), chain %s", attempt, max_retries, r.json().get("result"))
                return
        except Exception as e:
            if attempt < max_retries:
                log.info("RPC not ready yet (attempt %s/%s): %s - retrying in %ss...",
                         attempt, max_retries, e.__class__.__name__, retry_delay)
                await asyncio.sleep(retry_delay)
            else:
                log.error("RPC failed after %s attempts", max_retries)
                raise


def create_app(
    config: SimConfig | None = None,
    *,
    workload_factory: Callable[[SimConfig], Workload] = Workload.from_config,
    probe: bool = True,
) -> FastAPI:
    config = config or SimConfig.from_cfg(load_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if probe:
            log.info("Probing RPC endpoint...")
            await _probe_rpc(config.rpc_url)

        wl = workload_factory(config)
        await wl.init()
        app.state.workload = wl
        app.state.run_task = None
        app.state.started_at = None
        log.info("Workload initialized with %s wallets and %s tokens. Ready to accept requests!",
                 len(wl.pool), len(wl.catalog))
        try:
            yield
        finally:
            log.info("Shutting down...")
            wl.stop.set()
            if app.state.run_task is not None:
                try:
                    await app.state.run_task
                except Exception as e:
                    log.error("Workload run ended with an error: %s", e)
            log.info("Shutdown complete")

    app = FastAPI(
        title="DTF Workload",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "State", "description": "Funds, wallets, tokens and the operation log"},
            {"name": "Workload", "description": "Start and stop simulation runs"},
        ],
    )

    r_state = APIRouter(prefix="/state", tags=["State"])
    r_workload = APIRouter(prefix="/workload", tags=["Workload"])

    def running(request: Request) -> bool:
        task = request.app.state.run_task
        return task is not None and not task.done()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @r_state.get("/summary")
    async def state_summary(request: Request):
        return request.app.state.workload.snapshot_stats()

    @r_state.get("/funds")
    async def state_funds(request: Request):
        return request.app.state.workload.registry.snapshot()

    @r_state.get("/funds/{address}")
    async def state_fund(address: str, request: Request):
        fund = request.app.state.workload.registry.get(address)
        if fund is None:
            raise HTTPException(status_code=404, detail=f"Fund not found: {address}")
        return fund.to_dict()

    @r_state.get("/wallets")
    async def state_wallets(request: Request):
        return request.app.state.workload.snapshot_wallets()

    @r_state.get("/tokens")
    async def state_tokens(request: Request):
        return request.app.state.workload.catalog.snapshot()

    @r_state.get("/log")
    async def state_log(request: Request, limit: int = 100):
        oplog: OperationLog = request.app.state.workload.oplog
        return oplog.read()[-limit:] if limit > 0 else []

    @r_state.get("/network")
    async def state_network(request: Request):
        try:
            return await request.app.state.workload.gateway.network_info()
        except Exception as e:
            raise HTTPException(status_code=503, detail=f"Network query failed: {e}")

    @r_workload.post("/start")
    async def start_workload(request: Request, body: StartRequest | None = None):
        if running(request):
            raise HTTPException(status_code=400, detail="Workload already running")
        wl: Workload = request.app.state.workload
        wl.stop.clear()
        request.app.state.started_at = perf_counter()
        request.app.state.run_task = asyncio.create_task(wl.run(body.operations if body else None), name="dtf_run")
        log.info("Starting workload")
        return {"status": "started"}

    @r_workload.post("/stop")
    async def stop_workload(request: Request):
        if not running(request):
            raise HTTPException(status_code=400, detail="Workload not running")
        log.info("Stopping workload")
        request.app.state.workload.stop.set()
        try:
            await request.app.state.run_task
        except Exception as e:
            log.error("Workload run ended with an error: %s", e)
        return {"status": "stopped", "stats": request.app.state.workload.snapshot_stats()}

    @r_workload.get("/status", response_model=WorkloadStatus)
    async def workload_status(request: Request):
        started = request.app.state.started_at
        task = request.app.state.run_task
        error = None
        if task is not None and task.done() and not task.cancelled() and task.exception() is not None:
            error = str(task.exception())
        return WorkloadStatus(
            running=running(request),
            error=error,
            stats=request.app.state.workload.snapshot_stats(),
            uptime_seconds=perf_counter() - started if started else 0,
        )

    app.include_router(r_state)
    app.include_router(r_workload)
    return app
