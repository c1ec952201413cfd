"""Custom exceptions for the Odoo dashboard service.

This module defines the exception hierarchy for handling the error conditions
that can occur while talking to the Odoo XML-RPC interface and while shaping
report requests.
"""


class OdooError(Exception):
    """Base exception for all Odoo access and report errors.

    All custom exceptions in this module inherit from this class, allowing
    for broad exception handling when needed.
    """

    def __init__(self, message: str, action: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            action: Optional suggested action to resolve the error.
        """
        super().__init__(message)
        self.message = message
        self.action = action

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for structured error responses."""
        result = {"error": self.message}
        if self.action:
            result["action"] = self.action
        return result


class TransportError(OdooError):
    """Raised when a single XML-RPC call could not be completed."""

    def __init__(
        self,
        message: str,
        action: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, action)
        self.status_code = status_code


class NetworkError(TransportError):
    """Raised when network connectivity issues occur.

    This error indicates connection failures or timeouts. It wraps the
    underlying httpx error.
    """

    def __init__(
        self,
        message: str = "Network error occurred",
        original_error: Exception | None = None,
    ) -> None:
        """Initialize network error.

        Args:
            message: Error message.
            original_error: The underlying exception that caused this error.
        """
        action = "Check the Odoo server URL and your network connection"
        super().__init__(message, action)
        self.original_error = original_error


class PoisonedSessionError(TransportError):
    """Raised when Odoo answers with an HTML page instead of XML-RPC.

    Odoo silently redirects calls made with an expired session to its web
    login or error page, so the only symptom is a response body that is not
    a valid XML-RPC payload. The session manager reacts to this error by
    re-authenticating and replaying the call once.
    """

    def __init__(
        self,
        message: str = "Odoo returned a non XML-RPC response",
        snippet: str | None = None,
    ) -> None:
        super().__init__(message, "The session will be renewed automatically")
        self.snippet = snippet


class RpcFaultError(OdooError):
    """Raised when Odoo returns an XML-RPC fault.

    Faults are clean protocol-level errors (unknown field, access rights,
    invalid domain...) and are never retried.
    """

    def __init__(self, fault_code: int | str, fault_string: str) -> None:
        """Initialize fault error.

        Args:
            fault_code: Fault code reported by the server.
            fault_string: Fault message (usually a Python traceback).
        """
        # Odoo sends the whole server traceback; its last line names the error
        lines = fault_string.strip().splitlines()
        summary = lines[-1] if lines else ""
        super().__init__(f"Odoo fault {fault_code}: {summary}")
        self.fault_code = fault_code
        self.fault_string = fault_string


class AuthenticationError(OdooError):
    """Raised when authentication against Odoo fails.

    This error is fatal for the current call and is not retried. It indicates
    that either:
    - The database, user or API key are wrong
    - The authentication endpoint could not be reached
    """

    def __init__(
        self,
        message: str = "Autenticación con Odoo fallida.",
        action: str = "Check ODOO_DB, ODOO_USER and ODOO_API_KEY",
    ) -> None:
        """Initialize authentication error with default action."""
        super().__init__(message, action)


class ResponseDecodeError(OdooError):
    """Raised when an Odoo result does not have the expected shape."""

    def __init__(self, model: str, method: str, detail: str) -> None:
        super().__init__(f"Unexpected {method} result for {model}: {detail}")
        self.model = model
        self.method = method


class CompanyNotFoundError(OdooError):
    """Raised when a company name or alias cannot be resolved.

    Args:
        names: The names that did not match any company.
    """

    def __init__(self, names: list[str], message: str | None = None) -> None:
        if message is None:
            if len(names) == 1:
                message = f'No se encontró la empresa "{names[0]}".'
            else:
                message = f"No se encontraron las empresas: {', '.join(names)}"
        super().__init__(message, "Use list_companies to see available companies")
        self.names = names


class ValidationError(OdooError):
    """Raised when report parameters are missing or malformed."""
