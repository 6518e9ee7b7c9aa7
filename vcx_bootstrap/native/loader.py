from __future__ import annotations

"""Native module loader.

Every native capability enters the process through ``load_module``: the
logical name is resolved to a platform path, the shared object is opened with
ctypes and each requested symbol is bound with its declared signature. The
result is a read-only mapping of symbol name to callable.

There is no cache. Each call opens the library and binds the symbols again;
callers that care about redundant loads keep the handle themselves.
"""

import ctypes
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Sequence

from vcx_bootstrap.core.errors import NativeModuleNotFoundError, SymbolBindingError
from vcx_bootstrap.native.platform import resolve_library_path

_log = logging.getLogger(__name__)

_CTYPE_BASES: tuple[type, ...] = (
    ctypes._SimpleCData,
    ctypes._Pointer,
    ctypes._CFuncPtr,
    ctypes.Structure,
    ctypes.Union,
    ctypes.Array,
)


@dataclass(frozen=True)
class Signature:
    """Return type (None for void) and argument types of one exported symbol."""

    restype: Any = None
    argtypes: Sequence[Any] = field(default_factory=tuple)


VOID_NO_ARGS = Signature()


def _is_ctype(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, _CTYPE_BASES)


def _check_signature(logical_name: str, symbol: str, signature: Signature) -> None:
    if not isinstance(signature, Signature):
        raise SymbolBindingError(logical_name, symbol, f"expected Signature, got {type(signature).__name__}")
    if signature.restype is not None and not _is_ctype(signature.restype):
        raise SymbolBindingError(logical_name, symbol, f"restype {signature.restype!r} is not a ctypes type")
    for idx, argtype in enumerate(signature.argtypes):
        if not _is_ctype(argtype):
            raise SymbolBindingError(logical_name, symbol, f"argument {idx} type {argtype!r} is not a ctypes type")


class ModuleHandle(Mapping):
    """Bound entry points of one loaded native module."""

    def __init__(self, logical_name: str, path: str, functions: Dict[str, Callable[..., Any]]) -> None:
        self.logical_name = logical_name
        self.path = path
        self._functions = dict(functions)

    def __getitem__(self, symbol: str) -> Callable[..., Any]:
        return self._functions[symbol]

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __repr__(self) -> str:
        return f"ModuleHandle({self.logical_name!r}, path={self.path!r}, symbols={sorted(self._functions)})"


LibraryFactory = Callable[[str], Any]


class NativeLoader:
    def __init__(
        self,
        library_dir: str | None = None,
        platform: str | None = None,
        library_factory: LibraryFactory | None = None,
        check_exists: bool = True,
    ) -> None:
        self.library_dir = library_dir
        self.platform = platform
        self._library_factory = library_factory or ctypes.CDLL
        self._check_exists = check_exists

    def resolve(self, logical_name: str) -> str:
        return resolve_library_path(logical_name, platform=self.platform, library_dir=self.library_dir)

    def _open(self, logical_name: str, path: str) -> Any:
        if self._check_exists and not os.path.isfile(path):
            raise NativeModuleNotFoundError(logical_name, path, "file does not exist")
        try:
            return self._library_factory(path)
        except OSError as exc:
            raise NativeModuleNotFoundError(logical_name, path, str(exc)) from exc

    def load(self, logical_name: str, signatures: Mapping[str, Signature]) -> ModuleHandle:
        # An absent file is always a NativeModuleNotFoundError, whatever the
        # declared signatures look like.
        path = self.resolve(logical_name)
        library = self._open(logical_name, path)

        for symbol, signature in signatures.items():
            _check_signature(logical_name, symbol, signature)

        functions: Dict[str, Callable[..., Any]] = {}
        for symbol, signature in signatures.items():
            try:
                fn = getattr(library, symbol)
            except AttributeError as exc:
                raise SymbolBindingError(logical_name, symbol, "symbol not exported") from exc
            fn.restype = signature.restype
            fn.argtypes = list(signature.argtypes)
            functions[symbol] = fn

        _log.debug("loaded native module %s from %s symbols=%s", logical_name, path, sorted(functions))
        return ModuleHandle(logical_name, path, functions)


def default_loader() -> NativeLoader:
    from vcx_bootstrap.core.config import settings

    return NativeLoader(library_dir=settings.library_dir)


def load_module(logical_name: str, signatures: Mapping[str, Signature], loader: NativeLoader | None = None) -> ModuleHandle:
    return (loader or default_loader()).load(logical_name, signatures)
