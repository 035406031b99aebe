"""Directory (Azure AD) access through the Azure CLI."""

from .azure import AzureDirectory, nickname_of, validate_email
from .runner import CommandRunner, ShellCommandRunner

__all__ = [
    "AzureDirectory",
    "CommandRunner",
    "ShellCommandRunner",
    "nickname_of",
    "validate_email",
]
