from __future__ import annotations

"""Failure taxonomy for the bootstrap sequence.

Every error raised by this package derives from ``BootstrapError``. The
orchestrator stamps ``step`` on the way out so callers can tell a platform or
library problem from a native plugin problem from a remote agency problem.
Transient readiness failures are not part of this hierarchy; they are logged
and retried inside the prober.
"""


class BootstrapError(Exception):
    step: str | None = None

    def describe(self) -> str:
        if self.step:
            return f"[{self.step}] {self}"
        return str(self)


class NativeModuleNotFoundError(BootstrapError):
    """No loadable binary at the resolved library path."""

    def __init__(self, logical_name: str, path: str, reason: str | None = None) -> None:
        self.logical_name = logical_name
        self.path = path
        self.reason = reason
        msg = f"native module {logical_name!r} not loadable at {path}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class SymbolBindingError(BootstrapError):
    """A requested entry point is missing or its signature is unusable."""

    def __init__(self, logical_name: str, symbol: str, reason: str) -> None:
        self.logical_name = logical_name
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"cannot bind {symbol!r} in {logical_name!r}: {reason}")


class PluginInitError(BootstrapError):
    def __init__(self, plugin_name: str, underlying_error: BaseException | None = None, message: str | None = None) -> None:
        self.plugin_name = plugin_name
        self.underlying_error = underlying_error
        detail = message or (str(underlying_error) if underlying_error is not None else 'initialization failed')
        super().__init__(f"plugin {plugin_name!r} failed to initialize: {detail}")


class NativeCallError(BootstrapError):
    """A native entry point returned a non-zero error code."""

    def __init__(self, symbol: str, code: int, detail: str | None = None) -> None:
        self.symbol = symbol
        self.code = code
        self.detail = detail
        msg = f"{symbol} returned error code {code}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class ProvisioningError(BootstrapError):
    def __init__(self, message: str, detail: str | None = None) -> None:
        self.detail = detail
        if detail is not None:
            message = f"{message}; raw response: {detail!r}"
        super().__init__(message)


class ReadinessCancelled(BootstrapError):
    """Raised only when a caller-supplied probe context stops the wait."""

    def __init__(self, endpoint: str, attempts: int, reason: str) -> None:
        self.endpoint = endpoint
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"readiness wait for {endpoint} stopped after {attempts} attempt(s): {reason}")
