"""
evospec - version lifecycle tooling for evolving specification documents.

Keeps the version declared in a spec document, its embedded history ledger,
and the Git tags of the repository in agreement.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("evospec")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = ["__version__"]
