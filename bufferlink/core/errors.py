import logging
from typing import NoReturn

_logger = logging.getLogger("core.errors")


class BoundaryViolation(BaseException):
    """
    Unrecoverable disagreement between the two sides of the boundary.

    Raised when a Reader or Writer would step outside its buffer, when size
    arithmetic overflows, when the foreign allocator fails, or when a lifted
    buffer still holds unread bytes. None of these are runtime data
    conditions: they mean the two sides were built against different shapes.

    It derives from BaseException so that ordinary ``except Exception``
    handlers never swallow it; like SystemExit, it unwinds to the top level.
    """

    def __init__(self, operation: str, type_name: str, detail: str) -> None:
        self.operation = operation
        self.type_name = type_name
        self.detail = detail
        super().__init__(f"{operation}<{type_name}>: {detail}")


class BoundaryError(Exception):
    """Base class for recoverable failures surfaced to the caller."""


class MalformedPayloadError(BoundaryError):
    """
    The payload is in bounds but structurally invalid, e.g. an optional
    tag byte that is neither 0 nor 1.
    """

    def __init__(self, type_name: str, detail: str) -> None:
        self.type_name = type_name
        self.detail = detail
        super().__init__(f"malformed {type_name} payload: {detail}")


class ForeignCallError(BoundaryError):
    """The foreign callee reported a non-zero call status."""

    def __init__(self, function: str, code: int, message: str = "") -> None:
        self.function = function
        self.code = code
        self.message = message
        super().__init__(f"{function} failed with code {code}: {message}")


def violation(operation: str, type_name: str, detail: str) -> NoReturn:
    exc = BoundaryViolation(operation, type_name, detail)
    _logger.critical(str(exc))
    raise exc
