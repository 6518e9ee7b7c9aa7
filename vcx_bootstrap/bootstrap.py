from __future__ import annotations

"""Bootstrap and provisioning orchestrator.

Brings the native runtime to an operable state in a fixed order:

1. initialize plugins (postgres storage when configured, then nullpay)
2. configure the native logger
3. wait until the agency answers its health check
4. provision an agent and return its configuration

Runtime initialization with that configuration (step 5) is a separate call,
``init_runtime``, so provisioning and runtime init can be retried on their own.

Steps 1 and 2 run at most once per process; they are recorded in
``core.runtime.init_state`` only after succeeding. Only the readiness wait
retries; any other failure is tagged with its step name and propagates.
"""

import logging
import time
from typing import Any, Callable, List, Mapping

import httpx

from vcx_bootstrap.agency.provisioning import AgentConfig, ProvisionExchange, provision_agent
from vcx_bootstrap.agency.readiness import ProbeContext, await_ready
from vcx_bootstrap.core.config import Settings, settings as default_settings
from vcx_bootstrap.core.errors import BootstrapError
from vcx_bootstrap.core.runtime import LOGGER_KEY, InitializationState, init_state, plugin_key
from vcx_bootstrap.native import core_api
from vcx_bootstrap.native.core_api import LogLevel
from vcx_bootstrap.native.loader import NativeLoader
from vcx_bootstrap.plugin_runtime.initializers import PluginInitializer, initialize_plugin, required_plugins
from vcx_bootstrap.utils.url_helpers import normalize_agency_endpoint

_log = logging.getLogger(__name__)

STEP_PLUGINS = 'plugins'
STEP_LOGGER = 'logger'
STEP_READINESS = 'readiness'
STEP_PROVISIONING = 'provisioning'
STEP_RUNTIME = 'runtime'

Prober = Callable[[str, "ProbeContext | None"], Any]


class BootstrapOrchestrator:
    def __init__(
        self,
        settings: Settings | None = None,
        loader: NativeLoader | None = None,
        state: InitializationState | None = None,
        prober: Prober | None = None,
        exchange: ProvisionExchange | None = None,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or default_settings
        self.loader = loader or NativeLoader(library_dir=self.settings.library_dir)
        self.state = state or init_state
        self._prober = prober
        self._exchange = exchange
        self._http_client = http_client
        self._sleep = sleep

    def _step(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        _log.debug("bootstrap step=%s starting", name)
        try:
            return fn(*args, **kwargs)
        except BootstrapError as exc:
            exc.step = name
            _log.error("bootstrap step=%s failed: %s", name, exc)
            raise

    # Step 1
    def plugins(self) -> List[PluginInitializer]:
        return required_plugins(self.settings.use_postgres_storage)

    def initialize_plugins(self) -> List[str]:
        initialized: List[str] = []
        for plugin in self.plugins():
            ran = self.state.run_once(plugin_key(plugin.name), lambda p=plugin: initialize_plugin(p, loader=self.loader))
            if ran:
                initialized.append(plugin.name)
        return initialized

    # Step 2
    def bootstrap_logger(self, log_level: LogLevel | str) -> bool:
        return self.state.run_once(LOGGER_KEY, lambda: core_api.init_logger(log_level, loader=self.loader))

    # Step 3
    def await_agency(self, endpoint: str, context: ProbeContext | None = None) -> Any:
        if self._prober is not None:
            return self._prober(endpoint, context)
        return await_ready(
            endpoint,
            client=self._http_client,
            interval=self.settings.readiness_interval,
            request_timeout=self.settings.readiness_request_timeout,
            sleep=self._sleep,
            context=context,
        )

    # Step 4
    def provision(self, provision_config: Mapping[str, Any]) -> AgentConfig:
        return provision_agent(provision_config, loader=self.loader, exchange=self._exchange)

    def run(
        self,
        provision_config: Mapping[str, Any],
        log_level: LogLevel | str | None = None,
        agency_endpoint: str | None = None,
        context: ProbeContext | None = None,
    ) -> AgentConfig:
        log_level = log_level or self.settings.native_log_level
        endpoint = normalize_agency_endpoint(agency_endpoint or self.settings.agency_endpoint, docker=self.settings.docker_mode)

        initialized = self._step(STEP_PLUGINS, self.initialize_plugins)
        _log.info("plugins ready newly_initialized=%s", initialized)
        self._step(STEP_LOGGER, self.bootstrap_logger, log_level)
        self._step(STEP_READINESS, self.await_agency, endpoint, context)
        agent_config = self._step(STEP_PROVISIONING, self.provision, provision_config)
        _log.info("bootstrap complete agency=%s", endpoint)
        return agent_config

    # Step 5, invoked by the caller
    def init_runtime(self, agent_config: Mapping[str, Any]) -> None:
        self._step(STEP_RUNTIME, core_api.init_runtime, agent_config, loader=self.loader)


def bootstrap_and_provision(
    provision_config: Mapping[str, Any],
    log_level: LogLevel | str | None = None,
    agency_endpoint: str | None = None,
    *,
    context: ProbeContext | None = None,
    **orchestrator_kwargs: Any,
) -> AgentConfig:
    """Run steps 1-4 and return the provisioned agent configuration.

    Invocations must be serialized by the caller.
    """
    orchestrator = BootstrapOrchestrator(**orchestrator_kwargs)
    return orchestrator.run(provision_config, log_level, agency_endpoint, context=context)


def init_runtime(agent_config: Mapping[str, Any], **orchestrator_kwargs: Any) -> None:
    BootstrapOrchestrator(**orchestrator_kwargs).init_runtime(agent_config)
