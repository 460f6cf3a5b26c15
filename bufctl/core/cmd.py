import argparse
import logging
from collections.abc import Callable, Sequence

from bufctl.core.dispatcher import CommandDispatcher, CommandHandler
from bufctl.core.model import CodecContext, CommandResult
from bufctl.core.ports.render import Renderer
from bufferlink.core.errors import BoundaryViolation


class BufCtl:
    """
    Command line front end: parses arguments, dispatches to the registered
    command and renders its result.

    Recoverable failures are rendered as a "ko" result. A BoundaryViolation
    ends the process with its diagnostic.
    """

    def __init__(
        self,
        ctx_factory: Callable[[], CodecContext],
        renderers: dict[str, Renderer],
    ) -> None:
        self._ctx_factory = ctx_factory
        self._renderers = renderers
        self._dispatcher = CommandDispatcher()
        self._argparser = self._argparse()
        self._logger = logging.getLogger("bufctl.cmd")

    def command(self, name: str) -> Callable[[CommandHandler], CommandHandler]:
        return self._dispatcher.command(name)

    def parse_args(self, argv: Sequence[str] | None = None) -> argparse.Namespace:
        return self._argparser.parse_args(argv)

    def run(self, argv: Sequence[str] | None = None) -> int:
        namespace = self.parse_args(argv)
        renderer = self._renderers[namespace.output]

        try:
            result = self._dispatcher.dispatch(
                namespace.command,
                ctx=self._ctx_factory(),
                namespace=namespace
            )
        except BoundaryViolation as ex:
            raise SystemExit(f"fatal: {ex}")
        except Exception as ex:
            self._logger.debug(f"{namespace.command} failed", exc_info=True)
            result = CommandResult(
                type="ko",
                data={"error": type(ex).__name__, "message": str(ex)}
            )

        print(renderer.render(result.to_dict()))
        return 0 if result.type == "ok" else 1

    def _argparse(self) -> argparse.ArgumentParser:
        global_opts = argparse.ArgumentParser(
            prog="bufctl",
            description="Inspect the bufferlink wire format: size, encode and decode values.",
        )
        global_opts.add_argument(
            "-o", "--output",
            choices=sorted(self._renderers),
            default="yaml",
            help="Output format (default: yaml)."
        )
        global_opts.add_argument(
            "-l", "--log-level",
            default=None,
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Logging verbosity (default: log_level from the configuration)."
        )

        sub = global_opts.add_subparsers(dest="command", required=True)

        sub.add_parser("types", help="List named types.")

        size = sub.add_parser("size", help="Upper bound of the encoded size of a value.")
        size.add_argument("type", help="Type expression, e.g. 'sequence<u16>'.")
        size.add_argument("value", help="Value as a YAML literal, e.g. '[1, 2, 3]'.")

        encode = sub.add_parser("encode", help="Encode a value and print the wire bytes.")
        encode.add_argument("type")
        encode.add_argument("value")

        decode = sub.add_parser("decode", help="Decode wire bytes given as hex.")
        decode.add_argument("type")
        decode.add_argument("hex", help="Hex bytes; whitespace is ignored.")

        trace = sub.add_parser("trace", help="Dump a transfer trace file.")
        trace.add_argument("file")

        return global_opts
