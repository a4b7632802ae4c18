"""
Cart Sync - Main FastAPI Application

Single entry point for the cart API. The persistence context (Supabase,
browser storage backend, remote HTTP client) lives for the app's lifetime.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from cartsync.config import Settings
from cartsync.context import PersistenceContext
from cartsync.logging import get_logger
from cartsync.routers import cart_router

logger = get_logger(__name__)


# ==================== FASTAPI APP ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    app.state.context = await PersistenceContext.create(Settings.from_env())
    yield
    # Shutdown
    await app.state.context.close()


app = FastAPI(
    title="Cart Sync",
    description="Cart persistence across browser storage, local store and remote service",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cart_router, prefix="/api")


@app.get("/api/health")
async def health_check(request: Request):
    """Health check endpoint"""
    context = getattr(request.app.state, "context", None)
    if context is None:
        return {"status": "starting", "service": "cartsync"}

    local_store = await context.check_local_store()
    if not local_store.get("connected"):
        logger.warning(f"Health check: local store unavailable: {local_store.get('error')}")
    return {
        "status": "ok" if local_store.get("connected") else "degraded",
        "service": "cartsync",
        "local_store": local_store,
        "remote_configured": context.settings.remote_configured,
    }


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
