"""CASB risk score to Azure AD risk-level group synchronization."""

__version__ = "0.1.0"
