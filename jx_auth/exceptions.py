"""Custom exception hierarchy for jx-auth.

This module defines a structured exception hierarchy that lets callers tell
"not configured yet" apart from "configured but broken" and produce
user-friendly error messages from the CLI.

Exception Hierarchy:
    JxAuthError (base)
    ├── ConfigurationError
    ├── CredentialError
    │   ├── UserNotFoundError
    │   ├── InvalidCredentialError
    │   └── MissingCredentialError
    ├── ServerNotFoundError
    ├── InvalidArgumentError
    └── BackendError
        └── SecretReferenceError

Example Usage:
    >>> from jx_auth.exceptions import ConfigurationError
    >>> try:
    ...     service.load_config()
    ... except ConfigurationError as e:
    ...     print(e.message)
"""


class JxAuthError(Exception):
    """Base exception for all jx-auth errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(JxAuthError):
    """Configuration-related errors.

    Examples:
        - No file name configured for the file backend
        - Invalid YAML in a stored auth config
        - No ConfigMap or data key holding the auth config
    """

    pass


class CredentialError(JxAuthError):
    """Credential-related errors.

    Attributes:
        message: Human-readable error description
        reference: The server URL or user the error refers to
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            reference: The server URL or user that failed
            suggestion: Optional suggestion for resolution
        """
        self.reference = reference
        self.suggestion = suggestion

        full_message = message
        if reference:
            full_message = f"{message} (reference: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class UserNotFoundError(CredentialError):
    """The requested user does not exist on the server."""

    pass


class InvalidCredentialError(CredentialError):
    """A user has neither a bearer token nor a username and API token."""

    pass


class MissingCredentialError(CredentialError):
    """A username or token required at save time is empty."""

    pass


class ServerNotFoundError(JxAuthError):
    """No server matches the requested URL, or no servers exist at all."""

    pass


class InvalidArgumentError(JxAuthError):
    """An argument does not match any of the valid options.

    Attributes:
        options: The values that would have been accepted
    """

    def __init__(self, value: str, options: list[str]) -> None:
        """Initialize exception.

        Args:
            value: The rejected value
            options: The valid options
        """
        self.value = value
        self.options = options
        super().__init__(f"invalid argument {value!r}, valid options are {', '.join(options)}")


class BackendError(JxAuthError):
    """A storage backend failed to load or save the auth config.

    Attributes:
        backend: Name of the backend that failed (e.g. "kubernetes")
    """

    def __init__(self, message: str, backend: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            backend: Name of the failing backend
        """
        self.backend = backend
        full_message = f"{message} (backend: {backend})" if backend else message
        super().__init__(full_message)
        self.message = message


class SecretReferenceError(BackendError):
    """A vault:<path>:<key> secret reference could not be resolved."""

    pass
