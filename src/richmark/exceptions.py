#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the richmark library.

This module defines specialized exception classes for the error conditions
that can occur while editing a document, importing or exporting Markdown, and
loading configuration.

Exception Hierarchy
-------------------
- RichMarkError (base exception)

  - ValidationError (parameter/option validation)
    - ConfigError (configuration file problems)

  - InvalidSelectionError (command invoked in the wrong selection context)

  - StaleNodeError (node key no longer part of the live tree)

  - InvariantViolationError (structural rule would be broken)
    - TableStructureError (table grid rules)

  - TransactionError (misuse of the transaction API)

Commands on :class:`richmark.editor.Editor` never let these escape; they are
turned into a ``CommandResult`` carrying the message and the tree is left
unchanged.

"""

from typing import Any


class RichMarkError(Exception):
    """Base exception class for all richmark-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(RichMarkError):
    """Exception raised for invalid input parameters or options.

    Parameters
    ----------
    message : str
        Description of the validation error
    parameter_name : str, optional
        Name of the invalid parameter
    parameter_value : any, optional
        The invalid value that was provided
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the validation error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class ConfigError(ValidationError):
    """Exception raised when a configuration file cannot be read or applied.

    Parameters
    ----------
    message : str
        Description of the problem
    config_path : str, optional
        Path of the offending configuration file
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, config_path: str | None = None, original_error: Exception | None = None):
        """Initialize the configuration error."""
        super().__init__(
            message, parameter_name="config", parameter_value=config_path, original_error=original_error
        )
        self.config_path = config_path


class InvalidSelectionError(RichMarkError):
    """Exception raised when a command needs a selection it did not get.

    Typical causes are table commands invoked outside a table cell, merging a
    single cell, or unmerging a cell that does not span.
    """


class StaleNodeError(RichMarkError):
    """Exception raised when a node key is no longer attached to the live tree.

    Parameters
    ----------
    key : str
        The key that could not be resolved
    message : str, optional
        Custom error message

    """

    def __init__(self, key: str, message: str | None = None):
        """Initialize the stale node error."""
        super().__init__(message or f"Node '{key}' is not part of the document")
        self.key = key


class InvariantViolationError(RichMarkError):
    """Exception raised when an edit would break a structural invariant."""


class TableStructureError(InvariantViolationError):
    """Exception raised when a table edit would break the grid rules.

    Parameters
    ----------
    message : str
        Description of the violation
    table_key : str, optional
        Key of the table being edited

    """

    def __init__(self, message: str, table_key: str | None = None, original_error: Exception | None = None):
        """Initialize the table structure error."""
        super().__init__(message, original_error=original_error)
        self.table_key = table_key


class TransactionError(RichMarkError):
    """Exception raised when the transaction API is used incorrectly."""


__all__ = [
    "RichMarkError",
    "ValidationError",
    "ConfigError",
    "InvalidSelectionError",
    "StaleNodeError",
    "InvariantViolationError",
    "TableStructureError",
    "TransactionError",
]
