"""Cart event stream FastAPI application entrypoint."""
from __future__ import annotations

from fastapi import FastAPI, Request

from .api.cart_items import router as cart_items_router
from .api.carts import router as carts_router
from .api.schema import router as schema_router
from .api.stream import router as stream_router
from .core.events import EventBus
from .core.publisher import CartEventPublisher
from .store.database import init_db
from .util.log import get_logger
from .util.settings import StreamSettings

logger = get_logger(__name__)

app = FastAPI(title="eStore Cart Events", version="0.1.0")


@app.on_event("startup")
def _startup() -> None:
    init_db()
    settings = StreamSettings.from_env()
    bus = EventBus(max_queue_size=settings.queue_size)
    app.state.settings = settings
    app.state.bus = bus
    app.state.publisher = CartEventPublisher(bus)
    logger.info("Cart event bus ready (queue_size=%d)", settings.queue_size)


@app.on_event("shutdown")
async def _shutdown() -> None:
    await app.state.bus.close()


app.include_router(carts_router)
app.include_router(cart_items_router)
app.include_router(stream_router)
app.include_router(schema_router)


@app.get("/healthz")
def healthcheck(request: Request) -> dict[str, object]:
    """Basic health endpoint for readiness probes."""
    return {"status": "ok", "subscribers": request.app.state.bus.subscriber_count}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
