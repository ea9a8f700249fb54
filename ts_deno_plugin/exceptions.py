"""
Custom exceptions for the Deno resolution plugin.

None of these cross into the host compiler: each is caught at the component
boundary and degraded (empty import map, unresolved module, default config).
"""

class PluginError(Exception):
    """Base exception for plugin errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to a structured log/diagnostic payload."""
        return {
            'type': self.__class__.__name__,
            'message': self.message,
            'details': self.details
        }


class MalformedImportMap(PluginError):
    """Import map file is missing, not JSON, or has the wrong shape."""

    def __init__(self, map_path: str, reason: str):
        super().__init__(
            f"Malformed import map {map_path}: {reason}",
            details={
                'map_path': map_path,
                'reason': reason
            }
        )


class UnresolvableSpecifier(PluginError):
    """Specifier could not be mapped to a local file."""

    def __init__(self, specifier: str, containing_file: str, reason: str = None):
        super().__init__(
            f"Cannot resolve '{specifier}' from {containing_file}"
            + (f": {reason}" if reason else ""),
            details={
                'specifier': specifier,
                'containing_file': containing_file,
                'reason': reason
            }
        )


class CacheMiss(UnresolvableSpecifier):
    """Remote module has not been fetched into the Deno cache."""

    def __init__(self, url: str, filepath: str = None, containing_file: str = ""):
        super().__init__(url, containing_file, reason=f"not cached at {filepath}")
        self.details['filepath'] = filepath


class InvalidContainingPath(PluginError):
    """Containing file is not a real filesystem path (e.g. an unsaved document)."""

    def __init__(self, path: str, substitute: str):
        super().__init__(
            f"Containing file {path} is not a filesystem path, using {substitute}",
            details={
                'path': path,
                'substitute': substitute
            }
        )


class ConfigurationError(PluginError):
    """Invalid configuration."""

    def __init__(self, message: str, config_file: str = None):
        super().__init__(
            message,
            details={'config_file': config_file}
        )
