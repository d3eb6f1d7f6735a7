"""
HPLM API

Deterministic policy guardrail evaluation over HTTP.

Endpoints:
    POST /evaluate  - Evaluate a fact set, returns decision + audit record
    POST /verify    - Recompute an audit record's integrity hash
    GET  /ruleset   - Active ruleset info
    GET  /health    - Liveness probe
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import hplm
from hplm.config import Settings
from hplm.engine import Evaluator, GuardrailPipeline, RulesetRegistry
from hplm.exceptions import RulesetLoadError, RulesetVersionMismatch, ValidationError
from hplm.logging_setup import configure_logging
from hplm.packs import RulesetPackLoader

from hplm_api.routes import evaluate, ruleset, verify

logger = logging.getLogger("hplm.api")


def load_active_ruleset(registry: RulesetRegistry, settings: Settings) -> None:
    """Load the configured ruleset pack into the registry."""
    path = settings.resolved_ruleset_path()
    try:
        registry.activate(RulesetPackLoader().load(path))
    except (ValidationError, RulesetLoadError, RulesetVersionMismatch) as e:
        logger.error("Failed to load ruleset %s: %s", path, e)


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[RulesetRegistry] = None,
) -> FastAPI:
    """
    Build the API.

    A pre-populated registry skips loading the configured ruleset pack at
    startup.
    """
    settings = settings or Settings.from_env()
    registry = registry or RulesetRegistry()
    pipeline = GuardrailPipeline(evaluator=Evaluator(max_passes=settings.max_passes))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, settings.log_format)
        if not registry.is_loaded:
            load_active_ruleset(registry, settings)

        evaluate.set_registry(registry, pipeline)
        ruleset.set_registry(registry)

        if registry.is_loaded:
            logger.info(
                "HPLM API ready",
                extra={"ruleset_version": registry.current().version},
            )
        yield
        logger.info("Shutting down")

    app = FastAPI(
        title="HPLM Guardrail API",
        description="""
**Deterministic policy guardrail evaluation.**

Evaluates a typed fact set against the active ruleset: derivation rules run
to a fixpoint, gate rules may veto, and every decision comes with a sealed,
hash-verifiable audit record.

## Quick Start

1. `GET /ruleset` - See the active ruleset
2. `POST /evaluate` - Evaluate a fact set
3. `POST /verify` - Check an exported audit record
        """,
        version=hplm.__version__,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(evaluate.router)
    app.include_router(verify.router)
    app.include_router(ruleset.router)

    app.state.settings = settings
    app.state.registry = registry
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
