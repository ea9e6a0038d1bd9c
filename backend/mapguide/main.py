import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mapguide.core.http_connection import http_connection
from mapguide.core.logger import logs
from mapguide.routes.map_route import router as map_router
from mapguide.services.map_session import MapSession
from mapguide.services.session_state import MapSessionRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    http_connection.open()
    app.state.sessions = MapSessionRegistry(
        lambda session_id: MapSession.create(session_id, http_connection.get_client())
    )
    logs.log(logging.INFO, "Map engine started")
    yield
    app.state.sessions.close_all()
    await http_connection.close()
    logs.log(logging.INFO, "Map engine stopped")

app = FastAPI(title="Map Guide Engine", lifespan=lifespan)
app.include_router(map_router)

# --- Root Endpoint ---
@app.get("/")
async def root():
    return {
        "message": "Welcome to Map Guide API",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "map": "/map/{session_id}",
            "docs": "/docs"
        },
        "version": "1.0.0"
    }

# --- Health Check ---
@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Map Guide Engine"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("mapguide.main:app", host="0.0.0.0", port=8000, reload=True)
