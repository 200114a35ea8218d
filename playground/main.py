from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from playground.config import (
    ALLOWED_DELIVERY_POLICIES,
    ALLOWED_EXECUTION_MODES,
    get_compiler_settings,
    get_gateway_settings,
    load_env_files,
)
from playground.schemas.health import HealthResponse
from playground.services.session_gateway import SessionGateway, get_session_gateway


def _validate_env() -> None:
    """
    Validate configuration environment variables at startup.

    Raises RuntimeError listing every invalid value so the operator can fix
    all problems in one restart cycle.

    Rules:
    - COMPILER_EXECUTION_MODE must be 'isolated' or 'in_process'.
    - OUTCOME_DELIVERY must be 'caller' or 'broadcast'.
    - Numeric limits must parse when they are set.
    """

    load_env_files()

    errors: list[str] = []

    # --- Execution mode -------------------------------------------------
    mode = os.getenv("COMPILER_EXECUTION_MODE", "isolated").strip().lower()
    if mode not in ALLOWED_EXECUTION_MODES:
        errors.append(
            f"COMPILER_EXECUTION_MODE='{mode}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_EXECUTION_MODES)}."
        )

    # --- Delivery policy ------------------------------------------------
    delivery = os.getenv("OUTCOME_DELIVERY", "caller").strip().lower()
    if delivery not in ALLOWED_DELIVERY_POLICIES:
        errors.append(
            f"OUTCOME_DELIVERY='{delivery}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_DELIVERY_POLICIES)}."
        )

    # --- Numeric limits -------------------------------------------------
    for name, parse in (
        ("COMPILER_TIMEOUT_SECONDS", float),
        ("COMPILER_MAX_MEMORY_MB", int),
        ("COMPILER_MAX_OUTPUT_CHARS", int),
    ):
        raw = os.getenv(name)
        if raw is None:
            continue
        try:
            value = parse(raw)
        except ValueError:
            errors.append(f"{name}='{raw}' is not a number.")
            continue
        if value <= 0:
            errors.append(f"{name} must be positive, got {raw}.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Log the active execution settings on boot; cancel pending submissions on exit."""
    settings = get_compiler_settings()
    logging.getLogger(__name__).info(
        "Compiler hub ready mode=%s timeout_seconds=%s delivery=%s",
        settings.execution_mode,
        settings.timeout_seconds,
        get_gateway_settings().outcome_delivery,
    )
    try:
        yield
    finally:
        override = application.dependency_overrides.get(get_session_gateway)
        if override is not None:
            await override().shutdown()
        elif get_session_gateway.cache_info().currsize:
            await get_session_gateway().shutdown()
        logging.getLogger(__name__).info("Compiler hub shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    gateway_settings = get_gateway_settings()

    application = FastAPI(
        title="Compiler Playground API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(gateway_settings.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from playground.api.routers import compiler_hub_router

    application.include_router(compiler_hub_router)

    @application.get("/health")
    def healthcheck(gateway: SessionGateway = Depends(get_session_gateway)) -> HealthResponse:
        return HealthResponse(
            execution_mode=gateway.service.mode,
            outcome_delivery=gateway.publisher.delivery,
            open_connections=len(gateway.registry),
        )

    return application


app = create_app()
