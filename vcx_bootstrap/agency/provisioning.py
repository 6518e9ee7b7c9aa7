from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping

from vcx_bootstrap.core.errors import BootstrapError, ProvisioningError
from vcx_bootstrap.native.core_api import call_provision_agent, current_error
from vcx_bootstrap.native.loader import NativeLoader

_log = logging.getLogger(__name__)

ProvisionConfig = Dict[str, Any]
AgentConfig = Dict[str, Any]

# Takes the serialized provisioning payload, returns the serialized agent config
# (None when the exchange produced nothing).
ProvisionExchange = Callable[[str], "str | None"]


def native_exchange(loader: NativeLoader | None = None) -> ProvisionExchange:
    def _exchange(config_json: str) -> str | None:
        raw = call_provision_agent(config_json, loader=loader)
        if raw is None:
            raise ProvisioningError("agency returned no provisioning result", detail=current_error(loader))
        return raw
    return _exchange


def provision_agent(
    provision_config: Mapping[str, Any],
    loader: NativeLoader | None = None,
    exchange: ProvisionExchange | None = None,
) -> AgentConfig:
    """Register a new agent with the agency and return its configuration.

    The payload is serialized as-is and the response is returned exactly as the
    agency produced it; neither side is interpreted here.
    """
    try:
        config_json = json.dumps(dict(provision_config))
    except (TypeError, ValueError) as exc:
        raise ProvisioningError(f"provisioning config is not serializable: {exc}") from exc

    exchange = exchange or native_exchange(loader)
    try:
        raw = exchange(config_json)
    except BootstrapError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise ProvisioningError(f"provisioning exchange failed: {exc}") from exc
    if raw is None:
        raise ProvisioningError("agency returned no provisioning result")
    try:
        agent_config = json.loads(raw)
    except ValueError as exc:
        raise ProvisioningError("agency returned an undecodable provisioning result", detail=raw) from exc
    if not isinstance(agent_config, dict):
        raise ProvisioningError("agency returned a non-object provisioning result", detail=raw)
    _log.info("agent provisioned keys=%s", sorted(agent_config))
    return agent_config
