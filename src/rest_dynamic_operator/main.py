"""Main entry point for the REST Dynamic Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf
import requests

from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .controller import Controller, ControllerOptions
from .handlers import HandlerOptions, RestHandler
from .services.auth import AuthResolver
from .services.definitions import DefinitionGetter, DynamicDefinitionGetter, StaticDefinitionGetter
from .services.events import EventRecorder
from .services.kube import KubeClient
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


def build_definitions(config: OperatorConfig, kube: KubeClient) -> DefinitionGetter:
    """Use the configured description files when set, otherwise Definition resources."""
    resolver = AuthResolver(kube)
    if config.static_definition:
        return StaticDefinitionGetter(config.api_description, config.resource_descriptor, resolver)
    return DynamicDefinitionGetter(kube, resolver)


def build_controller(config: OperatorConfig, kube: KubeClient) -> Controller:
    """Wire the REST backend and the control loop for the configured resource.

    Chart-backed resources are served by ChartHandler, which needs a
    ChartBackend implementation for installing and rendering releases. None
    ships with this package, so the operator always runs the REST backend.
    """
    recorder = EventRecorder(kube.core_api)
    options = HandlerOptions(
        kube=kube,
        recorder=recorder,
        definitions=build_definitions(config, kube),
        session=requests.Session(),
        request_timeout=config.request_timeout,
        description_ttl=config.description_cache_ttl,
        debug=config.debug,
    )
    return Controller(
        kube,
        RestHandler(options),
        config.gvr,
        config.namespace,
        ControllerOptions(
            workers=config.workers,
            resync_interval=config.resync_interval,
            max_retries=config.max_retries,
            create_delay=config.create_delay,
        ),
        recorder=recorder,
    )


def register_handlers(config: OperatorConfig, registry: kopf.OperatorRegistry) -> None:
    """Attach startup, watch and cleanup handlers for the configured resource."""

    @kopf.on.startup(registry=registry)
    def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
        structured_logging.setup_structured_logging(config.debug)

        # Reconciliation happens in our workers; kopf only delivers watch events
        settings.posting.level = logging.WARNING
        settings.networking.request_timeout = config.request_timeout
        settings.watching.server_timeout = config.resync_interval

        initialize_tracing()

        controller = build_controller(config, KubeClient.from_config())
        memo.controller = controller
        memo.health_server = health.start_health_server(
            config.metrics_port, ready_check=lambda: not controller.queue.shutting_down
        )
        controller.run(config.workers)
        logger.info(
            f"Watching {config.gvr.group}/{config.gvr.version}/{config.gvr.resource} in namespace {config.namespace}"
        )

    @kopf.on.event(config.group, config.version, config.resource, registry=registry)
    def watch(event: dict[str, Any], memo: kopf.Memo, **_: Any) -> None:
        controller: Controller | None = getattr(memo, "controller", None)
        if controller is None:
            return
        controller.handle_watch_event(event.get("type"), event.get("object") or {})

    @kopf.on.cleanup(registry=registry)
    def shutdown(memo: kopf.Memo, **_: Any) -> None:
        controller: Controller | None = getattr(memo, "controller", None)
        if controller is not None:
            controller.stop()
        server = getattr(memo, "health_server", None)
        if server is not None:
            server.shutdown()


def run() -> None:
    """Start the operator for the resource named by the environment."""
    config = OperatorConfig.from_env()
    registry = kopf.OperatorRegistry()
    register_handlers(config, registry)
    kopf.run(
        registry=registry,
        standalone=True,
        namespaces=[config.namespace],
        memo=kopf.Memo(),
    )


if __name__ == "__main__":
    run()
