"""Error types for the identity plugin.

Every error a tool can report derives from BeadIdentityError. The
``retryable`` flag separates infrastructure failures (store or search
unreachable, timeouts) from rejections the caller has to fix.
"""


class BeadIdentityError(Exception):
    """Base exception for identity plugin errors."""

    retryable: bool = False


# Session context errors
class MissingContextError(BeadIdentityError):
    """Raised when the gateway supplied no session identity."""

    def __init__(self, message: str = "No session context. Cannot resolve identity."):
        super().__init__(message)


# Input errors
class ValidationError(BeadIdentityError):
    """Raised when tool input is malformed or a required parameter is missing."""

    pass


class MissingParameterError(ValidationError):
    """Raised when a command is called without a parameter it needs."""

    def __init__(self, parameter: str, command: str, hint: str = ""):
        message = f"'{parameter}' parameter required for {command}."
        if hint:
            message = f"{message[:-1]} ({hint})."
        super().__init__(message)
        self.parameter = parameter
        self.command = command


class InvalidStateError(ValidationError):
    """Raised when a record is not in the lifecycle state an operation needs."""

    pass


# Access control errors
class AuthorizationError(BeadIdentityError):
    """Raised when an ownership, identity-boundary or role check fails."""

    pass


# Lookup errors
class NotFoundError(BeadIdentityError):
    """Raised when a referenced record or file does not exist."""

    pass


class RecordNotFoundError(NotFoundError):
    """Raised when the bead store has no record with the given id."""

    def __init__(self, record_id: str):
        super().__init__(f"Bead '{record_id}' not found.")
        self.record_id = record_id


class MissingIdentityError(NotFoundError):
    """Raised when no identity bead matches the caller's session labels."""

    def __init__(self, message: str = "No identity bead found. Run 'init' first."):
        super().__init__(message)


class SpecNotFoundError(NotFoundError):
    """Raised when a spec document does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Spec '{name}' not found. Check the bead for the correct spec name.")
        self.name = name


def bd_command(args: list[str]) -> str:
    """Subcommand words of a bd argument list, for messages ('label add', 'close')."""
    words = []
    for arg in args[:2]:
        if arg.startswith("-"):
            break
        words.append(arg)
    return " ".join(words)


# Infrastructure errors
class InfrastructureError(BeadIdentityError):
    """Raised when an external dependency fails or times out."""

    retryable = True

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class StoreUnavailableError(InfrastructureError):
    """Raised when the bd executable cannot be started."""

    pass


class StoreCommandError(InfrastructureError):
    """Raised when a bd invocation exits with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        detail = stderr.strip() or "unknown error"
        super().__init__(f"bd {bd_command(args)} failed (exit {returncode}): {detail}")
        self.bd_args = args
        self.returncode = returncode
        self.stderr = stderr


class StoreTimeoutError(InfrastructureError):
    """Raised when a bd invocation exceeds its timeout."""

    def __init__(self, args: list[str], timeout: float):
        super().__init__(f"bd {bd_command(args)} exceeded timeout of {timeout}s")
        self.bd_args = args
        self.timeout = timeout


class StoreProtocolError(InfrastructureError):
    """Raised when bd output cannot be parsed."""

    pass


class SearchUnavailableError(InfrastructureError):
    """Raised when MeiliSearch cannot be reached or returns an error."""

    pass


class MemoryIOError(InfrastructureError):
    """Raised when reading or writing a workspace memory file fails."""

    pass
