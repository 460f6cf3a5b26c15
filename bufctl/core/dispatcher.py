import argparse
import functools
from typing import Protocol

from bufctl.core.model import CodecContext, CommandResult


class CommandHandler(Protocol):
    def __call__(
        self,
        ctx: CodecContext,
        namespace: argparse.Namespace,
    ) -> CommandResult:
        ...


class CommandDispatcher:
    def __init__(self) -> None:
        self._commands: dict[str, CommandHandler] = {}

    @property
    def commands(self) -> list[str]:
        return sorted(self._commands)

    def dispatch(
        self,
        name: str,
        ctx: CodecContext,
        namespace: argparse.Namespace
    ) -> CommandResult:
        command = self._commands.get(name)
        if command is None:
            raise RuntimeError(f"Unknown '{name}' Command")
        return command(ctx, namespace)

    def command(self, name: str):
        def decorator(func: CommandHandler):

            @functools.wraps(func)
            def wrapper(
                ctx: CodecContext,
                namespace: argparse.Namespace,
            ) -> CommandResult:
                return func(ctx, namespace)

            self._commands[name] = wrapper

            return wrapper

        return decorator
