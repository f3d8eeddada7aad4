from __future__ import annotations

"""
File: counter_service/main.py
Purpose: FastAPI entrypoint for the smart counter queue service.
Key responsibilities:
- Expose order, simulation, barista, metrics and analytics endpoints.
- Stream tick summaries to dashboards over /ws.
- Optionally advance the live clock on a timer (auto mode).
Key entrypoints:
- create_order(), advance_minute(), compare()
- run()
Config/env vars:
- COUNTER_HOST, COUNTER_PORT, LOG_LEVEL
- WORKER_COUNT, ARRIVAL_RATE, DEFAULT_POLICY, COUNTER_SEED
- RUSH_MIN_ORDERS, RUSH_MAX_ORDERS, FAIRNESS_TOLERANCE, METRICS_WINDOW
- AUTO_TICK_SECONDS, SMART_W_*, URGENT_AFTER_MINUTES, ELEVATED_AFTER_MINUTES
"""

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from counter_service.coordinator import Coordinator
from counter_service.schemas import (
    ArrivalsRequest,
    AutoAdvanceRequest,
    CompareRequest,
    CreateOrderRequest,
    ModeRequest,
    OrderView,
    RushResponse,
    TickSummaryView,
)
from counter_service.settings import engine_config, settings
from counter_service.sim.entities import InvalidDrinkTypeError
from counter_service.ws import WSManager

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s counter-service %(message)s",
)
logger = logging.getLogger("counter-service")

app = FastAPI(title="counter-service", version="1.0.0")
coordinator = Coordinator(engine_config(), auto_advance=settings.auto_tick_seconds > 0)
ws_manager = WSManager()


@app.exception_handler(InvalidDrinkTypeError)
async def invalid_drink_handler(_request: Request, exc: InvalidDrinkTypeError) -> JSONResponse:
    """Unknown drinks are client errors; no order is created."""
    return JSONResponse(status_code=400, content={"error": "InvalidDrinkType", "detail": str(exc)})


async def _auto_advance_loop() -> None:
    """Advance the live clock every interval while auto mode is on."""
    interval = settings.auto_tick_seconds if settings.auto_tick_seconds > 0 else 1.0
    while True:
        await asyncio.sleep(interval)
        if not coordinator.auto_advance:
            continue
        try:
            summary = coordinator.advance()
            await ws_manager.broadcast("tick", summary)
        except Exception as exc:  # noqa: BLE001
            logger.exception("auto advance failed err=%s", exc)


@app.on_event("startup")
async def startup_event() -> None:
    """Start the auto-advance timer."""
    asyncio.create_task(_auto_advance_loop())
    logger.info(
        "counter-service started workers=%s policy=%s seed=%s auto_tick_seconds=%s",
        coordinator.config.worker_count,
        coordinator.config.default_policy,
        coordinator.config.seed,
        settings.auto_tick_seconds,
    )


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness/readiness endpoint."""
    return {"status": "ok"}


@app.post("/orders", response_model=OrderView)
async def create_order(req: CreateOrderRequest) -> dict[str, Any]:
    """Enqueue one order at the current minute."""
    order = coordinator.create_order(req.drink, req.customer_type)
    logger.info("order created order_id=%s drink=%s customer_type=%s", order["id"], order["drink"], order["customer_type"])
    return order


@app.post("/orders/random", response_model=OrderView)
async def add_random_order() -> dict[str, Any]:
    return coordinator.add_random_order()


@app.get("/orders/queue")
async def queue() -> dict[str, Any]:
    """Queued orders in dispatch order with priority details."""
    return coordinator.queue_snapshot()


@app.post("/simulate/minute", response_model=TickSummaryView)
async def advance_minute() -> dict[str, Any]:
    """Run one simulated minute and broadcast its summary."""
    summary = coordinator.advance()
    await ws_manager.broadcast("tick", summary)
    return summary


@app.post("/simulate/rush", response_model=RushResponse)
async def rush() -> dict[str, Any]:
    return coordinator.trigger_rush()


@app.post("/simulate/mode")
async def switch_mode(req: ModeRequest) -> dict[str, Any]:
    return coordinator.switch_policy(req.mode)


@app.post("/simulate/arrivals")
async def toggle_arrivals(req: ArrivalsRequest) -> dict[str, Any]:
    return coordinator.set_auto_arrivals(req.enabled, req.arrival_rate)


@app.post("/simulate/auto")
async def toggle_auto(req: AutoAdvanceRequest) -> dict[str, Any]:
    """Enable or disable timed auto-advance of the live clock."""
    result = coordinator.set_auto_advance(req.enabled)
    logger.info("auto advance enabled=%s", result["auto_advance"])
    return result


@app.post("/simulate/reset")
async def reset() -> dict[str, Any]:
    result = coordinator.reset()
    await ws_manager.broadcast("reset", result)
    return result


@app.get("/baristas")
async def baristas() -> dict[str, Any]:
    return coordinator.worker_snapshot()


@app.get("/metrics")
async def metrics() -> dict[str, Any]:
    return coordinator.metrics()


@app.get("/analytics")
async def analytics() -> dict[str, Any]:
    return coordinator.analytics()


@app.post("/analytics/compare")
def compare(req: CompareRequest) -> dict[str, Any]:
    """Run SMART and FIFO over the same seeded schedule."""
    return coordinator.compare(
        arrival_count=req.arrival_count,
        duration_minutes=req.duration_minutes,
        arrival_rate=req.arrival_rate,
        worker_count=req.worker_count,
        seed=req.seed,
        include_details=req.include_details,
    )


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for streaming tick summaries."""
    await ws_manager.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except Exception:  # noqa: BLE001
        await ws_manager.disconnect(websocket)


def run() -> None:
    import uvicorn

    uvicorn.run("counter_service.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
