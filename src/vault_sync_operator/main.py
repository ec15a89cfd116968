"""Main entry point for the Vault Sync Operator."""

from __future__ import annotations

from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from . import tracing
from .config import OperatorConfig
from .handlers import shared
from .persistence import configure_storage


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    tracing.initialize_tracing()

    config = OperatorConfig.from_env()

    # Handler progress lives in annotations; targets keep our own finalizer
    configure_storage(settings)

    settings.posting.level = 0
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    runtime = shared.start_runtime(config)

    # Start metrics HTTP server with health check endpoints
    health.start_http_server(
        config.metrics_port,
        health_probe=runtime.store.health_check,
        readiness_probe=runtime.store.readiness_check,
    )


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Cancel in-flight reconciles."""
    shared.stop_runtime()


def main() -> None:
    """Run the operator against every namespace."""
    kopf.run(clusterwide=True)


if __name__ == "__main__":
    main()
