"""
Main FastAPI application for the Mosaic server
"""

from collections.abc import Sequence
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .. import __version__
from ..auth import AuthAdapter, CallerContext, get_auth_adapter, get_caller_context
from ..config import Settings, settings
from ..execution import Dispatcher, OperationRequest
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware
from ..schema.loader import build_schema, load_plugins_from_config
from ..schema.plugin import Plugin
from ..store import DocumentStore, TypeMapper, create_store

# Configure logging before creating logger
configure_logging(debug=settings.debug, level=settings.log_level)
logger = get_logger(__name__)


def create_app(
    plugins: Sequence[Plugin] | None = None,
    store: DocumentStore | None = None,
    auth_adapter: AuthAdapter | None = None,
    config: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        plugins: Plugins to compose; defaults to those named in configuration
        store: Document store; defaults to one built from ``database_url``
        auth_adapter: Identity adapter; defaults to the configured provider
        config: Settings to use instead of the global instance
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Mosaic API...")

        # Build phase: registration errors are fatal
        try:
            loaded = (
                list(plugins)
                if plugins is not None
                else load_plugins_from_config(config.plugins_config_path)
            )
            schema = build_schema(loaded)
        except Exception as e:
            logger.error("Failed to compose schema", error=str(e))
            raise

        document_store = store if store is not None else create_store(config.database_url)
        await document_store.initialize()
        logger.info("Document store initialized", engine=type(document_store).__name__)

        app.state.schema = schema
        app.state.store = document_store
        app.state.auth_adapter = (
            auth_adapter if auth_adapter is not None else get_auth_adapter(config)
        )
        app.state.dispatcher = Dispatcher(
            schema,
            TypeMapper(document_store, schema),
            max_writes_per_mutation=config.max_writes_per_mutation,
        )
        logger.info(
            "Mosaic API ready",
            plugins=[p.name for p in loaded],
            **schema.summary(),
        )

        yield

        logger.info("Shutting down Mosaic API...")
        await document_store.close()

    app = FastAPI(
        title="Mosaic API",
        description="Plugin-composed API server",
        version=__version__,
        lifespan=lifespan,
        debug=config.debug,
    )

    app.add_middleware(LoggingContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check(request: Request):  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "schema": request.app.state.schema.summary(),
        }

    @app.post("/graphql")
    async def execute_operation(  # pyright: ignore [reportUnusedFunction]
        body: OperationRequest,
        request: Request,
        caller: CallerContext = Depends(get_caller_context),
    ) -> JSONResponse:
        """Dispatch one operation; request-level failures are reported in ``errors``."""
        dispatcher: Dispatcher = request.app.state.dispatcher
        result = await dispatcher.dispatch(body, caller)
        return JSONResponse(result.to_response())

    @app.get("/graphql/schema", response_class=PlainTextResponse)
    async def composite_schema(request: Request) -> str:  # pyright: ignore [reportUnusedFunction]
        """The composite schema as GraphQL SDL."""
        return request.app.state.schema.to_sdl()

    return app


# Create the main application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mosaic.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
