from fastapi import FastAPI
import uvicorn
from contextlib import asynccontextmanager
from core.error_reporting import configure_logging, init_error_reporting
from core.errors import setup_exception_handlers
from core.realtime import RealtimeHub
from core.security import SecurityHeadersMiddleware
from db.database import create_db_and_tables, engine
from db.migrations import add_missing_columns
from routers.inventory import router as inventory_router
from routers.activity import router as activity_router
from routers.stats import router as stats_router
from routers.notifications import router as notifications_router
from routers.assistant import router as assistant_router
from routers.storage import router as storage_router
from routers.realtime import router as realtime_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_error_reporting()
    await create_db_and_tables()
    await add_missing_columns(engine)
    app.state.realtime_hub = RealtimeHub()
    yield


app = FastAPI(
    title="Stockroom API",
    description="API for multi-location inventory, stock activity and low-stock alerts",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(SecurityHeadersMiddleware)
setup_exception_handlers(app)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}


# Inventory routes
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(activity_router, prefix="/api/activity", tags=["activity"])
app.include_router(stats_router, prefix="/api", tags=["stats"])

# Alerts and push notifications
app.include_router(notifications_router, prefix="/api", tags=["notifications"])

# AI assistant
app.include_router(assistant_router, prefix="/api/assistant", tags=["assistant"])

# File storage and realtime channel
app.include_router(storage_router, tags=["storage"])
app.include_router(realtime_router, tags=["realtime"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
