"""Custom exceptions for modmap."""


class ModmapError(Exception):
    """Base exception for all modmap errors."""


class NoWorkspaceError(ModmapError):
    """Raised when a scan is requested but no workspace roots are known."""

    def __init__(self, message: str = "No workspace folders found"):
        super().__init__(message)


class ManifestError(ModmapError):
    """Raised when a package.json or package-lock.json cannot be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not parse {path}: {reason}")
