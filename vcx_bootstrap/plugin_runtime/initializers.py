from __future__ import annotations
"""Native plugin initializers.

A plugin is a shared library exposing one zero-argument init entry point
(storage backend, payment backend). Initializing it means loading the module
through the native loader and calling that entry point. The call is not
idempotent at the native layer; the orchestrator decides whether it runs.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from vcx_bootstrap.core.errors import PluginInitError
from vcx_bootstrap.native.loader import NativeLoader, VOID_NO_ARGS, load_module

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PluginInitializer:
    name: str
    module_name: str
    entry_point: str
    depends_on: tuple[str, ...] = field(default_factory=tuple)
    human_name: str | None = None


POSTGRES_STORAGE = PluginInitializer(
    name='postgres_storage',
    module_name='libindystrgpostgres',
    entry_point='postgresstorage_init',
    human_name='Postgres wallet storage',
)

NULLPAY = PluginInitializer(
    name='nullpay',
    module_name='libnullpay',
    entry_point='nullpay_init',
    human_name='Null payment backend',
)


def initialize_plugin(plugin: PluginInitializer, loader: NativeLoader | None = None) -> None:
    """Load ``plugin``'s module and invoke its init entry point once.

    Any failure, whether loading, binding or the native call itself, is
    re-raised as PluginInitError carrying the plugin name.
    """
    try:
        handle = load_module(plugin.module_name, {plugin.entry_point: VOID_NO_ARGS}, loader=loader)
        handle[plugin.entry_point]()
    except PluginInitError:
        raise
    except Exception as exc:  # noqa: BLE001
        _log.error("plugin init failed name=%s module=%s: %s", plugin.name, plugin.module_name, exc)
        raise PluginInitError(plugin.name, exc) from exc
    _log.info("plugin initialized name=%s module=%s", plugin.name, plugin.module_name)


def plan_plugin_order(plugins: Iterable[PluginInitializer]) -> List[PluginInitializer]:
    """Order plugins so each comes after its dependencies.

    Declaration order is kept wherever dependencies allow it. Dependencies on
    plugins outside the set and dependency cycles are fatal.
    """
    by_name: Dict[str, PluginInitializer] = {}
    for plugin in plugins:
        by_name[plugin.name] = plugin

    for name, plugin in by_name.items():
        missing = [d for d in plugin.depends_on if d not in by_name]
        if missing:
            raise PluginInitError(name, message=f"missing dependencies: {missing}")

    ordered: List[PluginInitializer] = []
    active: Set[str] = set()
    remaining: List[str] = list(by_name)
    progressed = True
    while progressed and remaining:
        progressed = False
        for name in list(remaining):
            plugin = by_name[name]
            if any(d not in active for d in plugin.depends_on):
                continue
            ordered.append(plugin)
            active.add(name)
            remaining.remove(name)
            progressed = True
            # restart from the front so declaration order wins among ready plugins
            break
    if remaining:
        raise PluginInitError(remaining[0], message=f"dependency cycle among {remaining}")
    return ordered


def required_plugins(use_postgres_storage: bool) -> List[PluginInitializer]:
    """Plugins for one bootstrap: storage only when configured, then payment."""
    plugins: List[PluginInitializer] = []
    if use_postgres_storage:
        plugins.append(POSTGRES_STORAGE)
    plugins.append(NULLPAY)
    return plan_plugin_order(plugins)
