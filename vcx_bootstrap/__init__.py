__all__ = ["__version__"]

# Version comes from the installed distribution metadata; a bare source
# checkout reports a local dev version.
from importlib.metadata import version, PackageNotFoundError

try:
	__version__ = version("vcx-bootstrap")
except PackageNotFoundError:
	__version__ = "0.0.0+local"
