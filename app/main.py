import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.audit.services.job_queue import AuditQueue
from app.features.audit.services.result_sink import LoggingResultSink
from app.features.audit.services.scan_session import ScanSessionOrchestrator
from app.features.health.routes.health import router as health_router
from app.platform.config import settings
from app.platform.exceptions import add_exception_handlers

# Configure logging to show INFO level messages
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One queue per process; every audit request goes through it.
    orchestrator = ScanSessionOrchestrator()
    app.state.audit_queue = AuditQueue(
        scan_fn=orchestrator.run_scan,
        max_concurrent=settings.MAX_CONCURRENT_AUDITS,
    )
    app.state.result_sink = LoggingResultSink()
    yield
    await app.state.audit_queue.shutdown()


app = FastAPI(
    title=settings.APP_NAME,
    description="Accessibility audits of public web pages",
    version="1.0.0",
    lifespan=lifespan,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": settings.APP_NAME,
        "description": "Automated WCAG accessibility audits for any public web page.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
