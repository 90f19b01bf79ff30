"""Error taxonomy shared by the oracle, compiler, and assembler layers."""

from __future__ import annotations

from collections.abc import Sequence


class UnsupportedTypeError(ValueError):
    """A type construct has no JSON Schema representation."""


class TypeSyntaxError(SyntaxError):
    """Type syntax returned by flow (or read from disk) failed to parse."""

    def __init__(self, message: str, path: str | None = None, line: int = 0, column: int = 0):
        where = f"{path or '<type>'} {line}:{column}"
        super().__init__(f"failed to parse type at {where}: {message}")
        self.path = path
        self.line = line
        self.column = column


class OracleInvocationError(RuntimeError):
    """The flow process could not be started or exited with an error."""

    def __init__(
        self,
        message: str,
        args: Sequence[str] = (),
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr


class OracleTimeoutError(OracleInvocationError):
    """The flow process ran past its per-call timeout and was killed."""


class OracleKilledError(OracleInvocationError):
    """The flow process was terminated by a signal."""


RETRYABLE_ERRORS: tuple[type[OracleInvocationError], ...] = (
    OracleTimeoutError,
    OracleKilledError,
)


class OracleExhaustedError(RuntimeError):
    """Every retry and drained attempt failed without producing output."""


class RecursionLimitError(RuntimeError):
    """A re-export chain went deeper than the configured limit."""

    def __init__(self, chain: Sequence[tuple[str, str]], limit: int):
        hops = " -> ".join(f"{name} in {path}" for path, name in chain)
        super().__init__(f"max recursion limit exceeded: {len(chain) - 1} > {limit} ({hops})")
        self.chain = list(chain)
        self.limit = limit


class TypeNotFoundError(LookupError):
    """An exported type name could not be located in its module."""


class NoTypesError(RuntimeError):
    """Generation produced no usable types."""


__all__ = [
    "NoTypesError",
    "OracleExhaustedError",
    "OracleInvocationError",
    "OracleKilledError",
    "OracleTimeoutError",
    "RETRYABLE_ERRORS",
    "RecursionLimitError",
    "TypeNotFoundError",
    "TypeSyntaxError",
    "UnsupportedTypeError",
]
