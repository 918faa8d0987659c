from typing import Optional

"""
Exception types shared by the analyzer modules.

Everything fatal derives from AnalyzerError (itself a RuntimeError, which is what
the rest of this tool has always raised), so the CLI can catch one type and map it
to a non-zero exit status. Non-fatal anomalies (version fallback, unknown
dependency, cycles, malformed index lines) are never raised; they end up in the
graph or in a printed notice instead.
"""


class AnalyzerError(RuntimeError):
    """Base class for every fatal condition of a run."""


class ConfigError(AnalyzerError):
    """The configuration file is missing, unreadable or fails validation."""


class FetchError(AnalyzerError):
    """The Packages index could not be retrieved or decompressed."""


class IndexReadError(AnalyzerError):
    """The Packages stream failed while it was being parsed."""


class PackageNotFoundError(AnalyzerError):
    """
    The requested package has no record in the index at all.

    We keep the requested name and version around so callers can report
    exactly what was asked for.
    """

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version or ""
        if self.version:
            message = f"Package '{name}' (version {self.version}) not found in the repository index."
        else:
            message = f"Package '{name}' not found in the repository index."
        super().__init__(message)
