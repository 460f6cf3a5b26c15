import logging
from collections.abc import Sequence
from typing import Any, Callable

from bufferlink.core.ffi.transfer import ViaFfi
from bufferlink.core.models.buffer import ByteBuffer
from bufferlink.core.ports.allocator import BufferAllocator


class ForeignFunction:
    """
    Binds a foreign callable to the transfer rules of its parameters and
    return value.

    Calling it:
    1. lowers every argument (scalars directly, composites into buffers),
    2. exports the buffers to the callee, which takes ownership of them,
    3. invokes the foreign callable,
    4. lifts the return value, freeing a returned buffer once decoded.

    If lowering an argument fails, buffers already lowered for earlier
    arguments have not been handed over yet and are freed here.

    With ``check_status`` set, the callable receives one extra trailing
    argument created by ``status_factory`` and ``check_status(name, status)``
    runs after the call; it is expected to raise ForeignCallError when the
    callee reports a failure.
    """

    def __init__(
        self,
        name: str,
        func: Callable[..., Any],
        args: Sequence[ViaFfi[Any, Any]],
        returns: ViaFfi[Any, Any] | None,
        allocator: BufferAllocator,
        status_factory: Callable[[], Any] | None = None,
        check_status: Callable[[str, Any], None] | None = None,
    ) -> None:
        self.name = name
        self._func = func
        self._args = list(args)
        self._returns = returns
        self._allocator = allocator
        self._status_factory = status_factory
        self._check_status = check_status
        self._logger = logging.getLogger("core.ffi.call")

    def __call__(self, *values: Any) -> Any:
        if len(values) != len(self._args):
            raise TypeError(
                f"{self.name}() takes {len(self._args)} arguments "
                f"but {len(values)} were given"
            )

        lowered = self._lower_all(values)
        foreign_args = [
            self._allocator.export(v) if isinstance(v, ByteBuffer) else v
            for v in lowered
        ]

        status = None
        if self._status_factory is not None:
            status = self._status_factory()
            foreign_args.append(status)

        self._logger.debug(f"Calling {self.name} with {len(foreign_args)} arguments")
        result = self._func(*foreign_args)

        if self._check_status is not None:
            self._check_status(self.name, status)

        if self._returns is None:
            return None
        return self._returns.lift(result)

    def _lower_all(self, values: Sequence[Any]) -> list[Any]:
        lowered: list[Any] = []
        try:
            for transfer, value in zip(self._args, values):
                lowered.append(transfer.lower(value))
        except Exception:
            for v in lowered:
                if isinstance(v, ByteBuffer):
                    self._allocator.free(v)
            raise
        return lowered
