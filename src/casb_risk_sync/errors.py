"""Exceptions raised across casb-risk-sync."""


class RiskSyncError(Exception):
    """Base exception for casb-risk-sync errors."""


class ConfigError(RiskSyncError):
    """Raised when configuration is missing or invalid."""


class ConfigFormatError(ConfigError):
    """Raised when a risk score range key has the wrong shape."""


class ConfigParseError(ConfigError):
    """Raised when a risk score range endpoint is not an integer."""


class ReportUnavailable(RiskSyncError):
    """Raised when the CASB risk score report cannot be downloaded."""


class CommandError(RiskSyncError):
    """Raised when a directory CLI command fails.

    The command line itself is kept off the message because some commands
    (``az login``) carry credentials.
    """

    def __init__(self, detail: str, returncode: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.returncode = returncode


class DirectoryError(RiskSyncError):
    """Raised when a directory lookup returns an unusable result."""


class LoginError(RiskSyncError):
    """Raised when the directory administrator login fails."""
