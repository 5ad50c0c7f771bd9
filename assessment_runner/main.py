from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from assessment_runner.config import AppConfig, load_config
from assessment_runner.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_runner_error,
    handle_unexpected_error,
)
from assessment_runner.http.request_id import RequestIdMiddleware
from assessment_runner.logging_setup import configure_logging
from assessment_runner.logic.data_layer import AssessmentDataLayer, InMemoryDataLayer
from assessment_runner.logic.errors import AssessmentRunnerError
from assessment_runner.logic.session_registry import SessionRegistry
from assessment_runner.middleware.cors import apply_cors
from assessment_runner.routes import api_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _default_data_layer(config: AppConfig) -> InMemoryDataLayer:
    seed = config.data.seed_path
    if seed:
        try:
            return InMemoryDataLayer.from_seed_file(seed)
        except (OSError, ValueError) as e:
            logger.error("seed_load_failed path=%s error=%s", seed, e)
            raise
    return InMemoryDataLayer()


def create_app(
    data_layer: AssessmentDataLayer | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    `data_layer` defaults to an in-memory store, seeded from
    `data.seed_path` when configured.
    """
    configure_logging()
    config = config or load_config()

    app = FastAPI(title="Assessment Runner", version="0.1.0")
    app.state.config = config
    app.state.data_layer = data_layer if data_layer is not None else _default_data_layer(config)
    app.state.sessions = SessionRegistry()

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(AssessmentRunnerError, handle_runner_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=config.cors.origins)
    app.add_middleware(RequestIdMiddleware)

    @app.get("/health", summary="Liveness probe")
    def health() -> dict:
        return {"status": "ok", "sessions": len(app.state.sessions)}

    app.include_router(api_router, prefix=API_PREFIX)
    logger.info("app_created data_layer=%s", type(app.state.data_layer).__name__)
    return app
