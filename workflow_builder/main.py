"""Application factory and entry point for the workflow builder."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .config import AppConfig, get_config, get_integration_settings
from .core.execution_engine import ExecutionEngine
from .core.logging import setup_logging, get_logger
from .core.middleware import ErrorHandlingMiddleware, PerformanceMonitoringMiddleware
from .core.node_executor import NodeExecutor
from .services.registry import ServiceRegistry
from .storage.database import create_tables, get_database_engine
from .api.endpoints import router, init_dependencies


def create_lifespan_handler(config: AppConfig):
    """Create the application lifespan handler for a configuration."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.log_structured,
            max_size=config.log_max_size,
            backup_count=config.log_backup_count
        )
        logger.info(f"Starting {config.app_name} v{config.app_version}")

        try:
            engine = get_database_engine(
                config.database_url,
                echo=config.database_echo,
                connect_args=config.get_database_connect_args()
            )
            create_tables(engine)
            logger.info("Database tables created")

            services = ServiceRegistry.from_settings(get_integration_settings())
            execution_engine = ExecutionEngine(NodeExecutor(services), node_delay=config.node_delay)
            init_dependencies(execution_engine)

            app.state.config = config
            app.state.services = services
            app.state.execution_engine = execution_engine
            logger.info(f"Integrations configured: {services.status()}")
        except Exception as e:
            logger.error(f"Application startup failed: {e}")
            raise

        yield

        logger.info(f"Shutting down {config.app_name}")
        services.close()

    return lifespan


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Create and configure a FastAPI application instance."""
    if config is None:
        config = get_config()

    app = FastAPI(
        title=config.app_name,
        description="Compose and run workflows of trigger, data, logic and action nodes",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(config)
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    app.add_middleware(PerformanceMonitoringMiddleware, slow_request_threshold=config.slow_request_threshold)
    app.add_middleware(ErrorHandlingMiddleware)

    app.include_router(router)
    register_health_routes(app, config)

    return app


def register_health_routes(app: FastAPI, config: AppConfig) -> None:
    """Root and /health routes."""

    @app.get("/")
    def root():
        return {"service": config.app_name, "version": config.app_version, "docs": "/docs"}

    @app.get("/health")
    def health_check(request: Request):
        """Database connectivity plus which integrations will make real calls."""
        services: ServiceRegistry = request.app.state.services
        try:
            with get_database_engine().connect() as connection:
                connection.execute(text("SELECT 1"))
            database = "connected"
        except Exception as e:
            get_logger(__name__).error(f"Health check failed: {str(e)}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "database": "disconnected",
                    "error": str(e),
                    "timestamp": datetime.utcnow().isoformat()
                }
            )

        return {
            "status": "healthy",
            "database": database,
            "services": services.status(),
            "timestamp": datetime.utcnow().isoformat()
        }


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, **get_config().get_uvicorn_config())
