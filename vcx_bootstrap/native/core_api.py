from __future__ import annotations

"""Entry points of the core runtime module (libvcx) used during bootstrap."""

import ctypes
import enum
import itertools
import json
import logging
import threading
from typing import Any, Dict, Mapping

from vcx_bootstrap.core.errors import BootstrapError, NativeCallError
from vcx_bootstrap.native.loader import NativeLoader, Signature, load_module

_log = logging.getLogger(__name__)

CORE_MODULE = 'libvcx'


class LogLevel(str, enum.Enum):
    error = 'error'
    warn = 'warn'
    info = 'info'
    debug = 'debug'
    trace = 'trace'


# (command_handle, error_code)
INIT_CALLBACK = ctypes.CFUNCTYPE(None, ctypes.c_uint32, ctypes.c_uint32)

LOGGER_SIGNATURES: Dict[str, Signature] = {
    'vcx_set_default_logger': Signature(ctypes.c_uint32, (ctypes.c_char_p,)),
}

PROVISION_SIGNATURES: Dict[str, Signature] = {
    'vcx_provision_agent': Signature(ctypes.c_char_p, (ctypes.c_char_p,)),
}

INIT_SIGNATURES: Dict[str, Signature] = {
    'vcx_init_with_config': Signature(ctypes.c_uint32, (ctypes.c_uint32, ctypes.c_char_p, INIT_CALLBACK)),
}

ERROR_MESSAGE_SIGNATURES: Dict[str, Signature] = {
    'vcx_error_c_message': Signature(ctypes.c_char_p, (ctypes.c_uint32,)),
}

CURRENT_ERROR_SIGNATURES: Dict[str, Signature] = {
    'vcx_get_current_error': Signature(None, (ctypes.POINTER(ctypes.c_char_p),)),
}

_command_handles = itertools.count(1)


def _decode(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        return raw.decode('utf-8', errors='replace')
    return str(raw)


def error_message(code: int, loader: NativeLoader | None = None) -> str | None:
    """Human readable text for a native error code, if the library provides it."""
    try:
        handle = load_module(CORE_MODULE, ERROR_MESSAGE_SIGNATURES, loader=loader)
        return _decode(handle['vcx_error_c_message'](code))
    except BootstrapError as exc:
        _log.debug("no error message for code=%s: %s", code, exc)
        return None


def current_error(loader: NativeLoader | None = None) -> str | None:
    """JSON details of the last failed native call on this thread, if any.

    Calls that report failure with a null pointer instead of an error code
    leave their reason here.
    """
    try:
        handle = load_module(CORE_MODULE, CURRENT_ERROR_SIGNATURES, loader=loader)
    except BootstrapError as exc:
        _log.debug("no current error available: %s", exc)
        return None
    details = ctypes.c_char_p()
    handle['vcx_get_current_error'](ctypes.byref(details))
    return _decode(details.value)


def _log_pattern(level: LogLevel | str) -> str:
    if isinstance(level, LogLevel):
        return level.value
    return str(level)


def init_logger(level: LogLevel | str, loader: NativeLoader | None = None) -> None:
    """Install the native default logger at ``level``.

    Not guarded: a second call in the same process is undefined behaviour at
    the native layer, so callers go through the orchestrator.
    """
    pattern = _log_pattern(level)
    handle = load_module(CORE_MODULE, LOGGER_SIGNATURES, loader=loader)
    rc = handle['vcx_set_default_logger'](pattern.encode('utf-8'))
    if rc:
        raise NativeCallError('vcx_set_default_logger', int(rc), error_message(int(rc), loader))
    _log.info("native logger configured pattern=%s", pattern)


def call_provision_agent(config_json: str, loader: NativeLoader | None = None) -> str | None:
    handle = load_module(CORE_MODULE, PROVISION_SIGNATURES, loader=loader)
    return _decode(handle['vcx_provision_agent'](config_json.encode('utf-8')))


def init_runtime(agent_config: Mapping[str, Any], loader: NativeLoader | None = None) -> None:
    """Initialize the native runtime with a provisioned agent configuration.

    Blocks until the native completion callback fires. There is no timeout.
    """
    handle = load_module(CORE_MODULE, INIT_SIGNATURES, loader=loader)
    command_handle = next(_command_handles)
    done = threading.Event()
    outcome: Dict[str, int] = {}

    def _on_complete(handle_id: int, err: int) -> None:
        outcome['err'] = int(err)
        done.set()

    # keep a reference until the callback fired
    callback = INIT_CALLBACK(_on_complete)
    config_json = json.dumps(dict(agent_config))
    rc = handle['vcx_init_with_config'](command_handle, config_json.encode('utf-8'), callback)
    if rc:
        raise NativeCallError('vcx_init_with_config', int(rc), error_message(int(rc), loader))
    done.wait()
    err = outcome.get('err', 0)
    if err:
        raise NativeCallError('vcx_init_with_config', err, error_message(err, loader))
    _log.info("native runtime initialized command_handle=%s", command_handle)
