"""
Base exceptions for Resilient Locator.
"""


class ResilientLocatorError(Exception):
    """
    Base exception for all Resilient Locator errors.
    
    All custom exceptions inherit from this class, making it easy
    to catch any error from the library.
    
    Attributes:
        message: Human-readable error message
        details: Optional additional error details
    """
    
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(ResilientLocatorError):
    """
    Error in configuration.
    
    Raised when there's an issue with settings, environment variables,
    configuration files, or stability patterns that fail to compile.
    """
    pass


class SnapshotError(ResilientLocatorError):
    """
    Malformed DOM snapshot.
    
    Raised when a snapshot is not a single-rooted tree: dangling child
    references, nodes with two parents, cycles or unreachable nodes.
    """
    pass


class InvalidLocatorError(ResilientLocatorError):
    """
    Locator description is invalid.
    
    Raised for empty locators, unknown strategy kinds, bad relations
    or unparseable CSS-like paths.
    """
    pass
