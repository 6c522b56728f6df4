import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vendorsettle.api.routes.auth import router as auth_router
from vendorsettle.api.routes.inventory import router as inventory_router
from vendorsettle.api.routes.sales import router as sales_router
from vendorsettle.api.routes.settlements import router as settlements_router
from vendorsettle.api.routes.vendors import router as vendors_router
from vendorsettle.core.config import settings
from vendorsettle.core.logger import get_logger
from vendorsettle.services.cleanup import purge_abandoned_sessions

logger = get_logger("vendorsettle.cleanup")


async def _cleanup_worker() -> None:
    while True:
        try:
            purged = purge_abandoned_sessions()
            if purged:
                logger.info("purged abandoned settlement sessions: %s", purged)
        except Exception:
            logger.exception("settlement session cleanup failed")
        await asyncio.sleep(max(60, settings.cleanup_interval_minutes * 60))


@asynccontextmanager
async def lifespan(_: FastAPI):
    task: asyncio.Task | None = None
    if settings.cleanup_enabled:
        task = asyncio.create_task(_cleanup_worker())
    try:
        yield
    finally:
        if task:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(inventory_router)
app.include_router(vendors_router)
app.include_router(settlements_router)
app.include_router(sales_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
