from typing import Optional
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import structlog

from observer.application.api.route.agent import router as agent_router
from observer.domain.capture.screen_capture import HeadlessScreenCapture, ScreenCaptureProvider
from observer.domain.context.memory.agent_store import InMemoryAgentStore
from observer.domain.preprocessing.pre_processor import PreProcessor
from observer.infrastructure.config.settings import ObserverSettings, get_settings
from observer.infrastructure.observability.logging import metrics, setup_logging

logger = structlog.get_logger(__name__)


def create_app(
    store: Optional[InMemoryAgentStore] = None,
    screen_capture: Optional[ScreenCaptureProvider] = None,
    settings: Optional[ObserverSettings] = None
) -> FastAPI:
    """Build the HTTP application with its collaborators"""

    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format, settings.service_name)

    app = FastAPI(title="Observer Agents")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store or InMemoryAgentStore()
    app.state.screen_capture = screen_capture or HeadlessScreenCapture()
    app.state.pre_processor = PreProcessor(
        screen_capture=app.state.screen_capture,
        memory_store=app.state.store,
        max_iterations_per_directive=settings.max_directive_iterations
    )

    app.include_router(agent_router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        agents = await request.app.state.store.list_agents()
        return {
            "status": "healthy",
            "agents": len(agents),
            "timestamp": datetime.utcnow().isoformat(),
            "metrics": metrics.get_metrics_summary()
        }

    logger.info("API server configured", service=settings.service_name)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings=settings), host=settings.api_host, port=settings.api_port)
