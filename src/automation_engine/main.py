"""
Workflow Automation Engine Service

A FastAPI service for tenant-authored workflow automations with:
- Trigger/action graphs connected by conditional edges
- Activation rules enforced before a workflow goes live
- Deterministic execution with a persisted step-by-step trace
- Pluggable action handlers behind a dispatcher interface
- WebSocket streaming for execution updates
"""

import logging
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
import asyncpg

from .config import config
from .dispatch import ActionDispatcher, create_default_dispatcher
from .engine.executor import WorkflowExecutor
from .persistence import WorkflowStore, InMemoryWorkflowStore, PostgresWorkflowStore
from .service import WorkflowService
from .api.routes import router, set_dependencies
from .api.websocket import websocket_endpoint, send_execution_update

# Configure logging
logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


# Global resources
store: Optional[WorkflowStore] = None
dispatcher: Optional[ActionDispatcher] = None
workflow_service: Optional[WorkflowService] = None


async def create_store() -> WorkflowStore:
    """Create the configured store, falling back to memory if the database is unreachable."""
    if config.store_backend == "memory":
        logger.info("Using in-memory workflow store")
        return InMemoryWorkflowStore()

    try:
        pool = await asyncpg.create_pool(config.database_url, min_size=2, max_size=10)
        logger.info("Database connection established")
        postgres_store = PostgresWorkflowStore(pool)
        await postgres_store.init_tables()
        return postgres_store
    except Exception as e:
        logger.warning(f"Could not connect to database, using in-memory store: {e}")
        return InMemoryWorkflowStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global store, dispatcher, workflow_service

    # Setup OpenTelemetry
    resource = Resource.create({"service.name": "automation-engine"})
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otel_endpoint))
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)

    store = await create_store()
    dispatcher = create_default_dispatcher(config.dispatcher_settings())
    executor = WorkflowExecutor(store, dispatcher, listener=send_execution_update)
    workflow_service = WorkflowService(
        store,
        executor,
        default_execution_limit=config.default_execution_limit,
    )
    set_dependencies(workflow_service)

    logger.info("Automation engine service started")
    yield

    # Cleanup
    await workflow_service.close()
    await dispatcher.close()
    await store.close()
    provider.shutdown()

    logger.info("Automation engine service stopped")


app = FastAPI(
    title="Workflow Automation Engine",
    description="Trigger/action workflow automation with auditable executions",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument with OpenTelemetry
FastAPIInstrumentor.instrument_app(app)

# Include API routes
app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "store": type(store).__name__ if store else None}


@app.websocket("/ws/executions/{execution_id}")
async def execution_websocket(websocket: WebSocket, execution_id: str):
    """WebSocket endpoint for execution streaming."""
    await websocket_endpoint(websocket, execution_id)


def run():
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
