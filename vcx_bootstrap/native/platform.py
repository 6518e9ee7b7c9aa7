from __future__ import annotations

import sys
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformDescriptor:
    identifier: str
    library_extension: str
    library_dir: str


FALLBACK_PLATFORM = "linux"

_PLATFORMS: dict[str, PlatformDescriptor] = {
    "linux": PlatformDescriptor("linux", ".so", "/usr/lib/"),
    "darwin": PlatformDescriptor("darwin", ".dylib", "/usr/local/lib/"),
    "win32": PlatformDescriptor("win32", ".dll", "c:\\windows\\system32\\"),
}


def supported_platforms() -> list[str]:
    return list(_PLATFORMS)


def current_platform() -> str:
    return sys.platform


def describe_platform(identifier: str | None = None) -> PlatformDescriptor:
    """Return the descriptor for ``identifier`` (default: running OS).

    Unrecognized identifiers get the generic Unix entry instead of an error.
    """
    key = (identifier if identifier is not None else current_platform()).lower()
    return _PLATFORMS.get(key) or _PLATFORMS[FALLBACK_PLATFORM]


def _with_trailing_separator(directory: str, descriptor: PlatformDescriptor) -> str:
    if directory.endswith(("/", "\\")):
        return directory
    sep = "\\" if descriptor.identifier == "win32" else "/"
    return directory + sep


def resolve_library_path(logical_name: str, platform: str | None = None, library_dir: str | None = None) -> str:
    """Compose ``<dir><logical_name><ext>`` for the given platform.

    ``library_dir`` replaces the table directory (e.g. a container mount). No
    existence check happens here; the loader does that.
    """
    descriptor = describe_platform(platform)
    directory = descriptor.library_dir
    if library_dir:
        directory = _with_trailing_separator(library_dir, descriptor)
    return f"{directory}{logical_name}{descriptor.library_extension}"
