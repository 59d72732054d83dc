"""FastAPI application wiring for the metadata hub.

Run with the CLI (``metadata-hub``) or directly through uvicorn:

    uvicorn --factory src.metadata_hub.server:create_app
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import HubConfig, load_config
from .logging_config import get_logger
from .pipeline import HubPipeline
from .routes import stream_router
from .rules import RuleSet, load_rules
from .supervisor import ProcessSupervisor

logger = get_logger(__name__, namespace='api')


def create_supervisor(config: HubConfig, pipeline: HubPipeline) -> Optional[ProcessSupervisor]:
    """Build the decoder supervisor, or None when no command is configured."""
    if not config.spawn_command:
        return None
    return ProcessSupervisor(
        command=config.spawn_command,
        args=config.spawn_args,
        cwd=config.working_directory,
        on_line=pipeline.handle_line,
        restart_delay=config.restart_delay,
    )


def create_app(config: Optional[HubConfig] = None, rules: Optional[RuleSet] = None) -> FastAPI:
    """Create the hub application.

    Args:
        config: Hub configuration (default: read from the environment)
        rules: Pre-built rule set (default: loaded from config.rules_path)

    Raises:
        RuleConfigError: If config.strict_rules is set and the rules are invalid
    """
    if config is None:
        config = load_config()
    if rules is None:
        rules = load_rules(config.rules_path, strict=config.strict_rules)

    pipeline = HubPipeline(rules)
    supervisor = create_supervisor(config, pipeline)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if supervisor is not None:
            supervisor.start()
        else:
            logger.warning("OP25_COMMAND is not set; no decoder will be launched")
        try:
            yield
        finally:
            if supervisor is not None:
                await supervisor.stop()
            pipeline.broadcaster.close_all()

    app = FastAPI(title="OP25 Metadata Hub", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
    )

    app.state.config = config
    app.state.pipeline = pipeline
    app.state.supervisor = supervisor

    app.include_router(stream_router)

    return app
