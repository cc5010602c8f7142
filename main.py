from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from survivor.database import create_db_and_tables
from survivor.errors import SurvivorError
from survivor.logging import get_logger

logger = get_logger("survivor.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    create_db_and_tables()
    yield


app = FastAPI(
    title="Premier League Survivor Pool",
    description="Pick one team a week, never the same team twice, and outlast your friends",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(SurvivorError)
async def survivor_error_handler(request: Request, exc: SurvivorError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message}
    )


# Include routers
from survivor.routers import admin, api, auth, dashboard, pools

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(pools.router)
app.include_router(api.router)
app.include_router(admin.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
