import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autoconnect.database import engine, Base
from autoconnect.models import KeyValue, Lead, Prompt, ConnectionRequest, Message  # noqa: F401
from autoconnect.logging_config import setup_logging
from autoconnect.worker.linkedin_worker import worker

logger = logging.getLogger("autoconnect")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    setup_logging()

    # Create all tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created.")

    # Start the background worker
    await worker.start()

    # A workflow interrupted by a crash or restart picks up where it stopped
    if worker.engine.has_work() and worker.session.exists():
        logger.info("Unfinished workflow found; relaunching browser to resume it.")
        await worker.launch_and_login()

    yield

    # Shutdown
    await worker.stop()
    logger.info("Shutting down.")


app = FastAPI(title="AutoConnect", version="1.0.0", lifespan=lifespan)

# CORS - allow the dashboard dev server
allowed_origins = ["http://localhost:5173", "http://localhost:3000"]
extra_origin = os.environ.get("ALLOWED_ORIGIN")
if extra_origin:
    allowed_origins.append(extra_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from autoconnect.routers import leads, linkedin, messages, workflow  # noqa: E402

app.include_router(workflow.router, prefix="/api/workflow", tags=["workflow"])
app.include_router(linkedin.router, prefix="/api/linkedin", tags=["linkedin"])
app.include_router(leads.router, prefix="/api/leads", tags=["leads"])
app.include_router(messages.router, prefix="/api/messages", tags=["messages"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}
