import argparse

from bufctl.bootstrap.deps import get_cli
from bufctl.core.model import CodecContext, CommandResult
from bufctl.core.values import parse_value
from bufferlink.core.ffi.transfer import BufferTransfer

cli = get_cli()


@cli.command("types")
def cmd_types(ctx: CodecContext, namespace: argparse.Namespace) -> CommandResult:
    _ = namespace
    return CommandResult(
        type="ok",
        data={
            "types": ctx.registry.names,
            "composites": ["optional<T>", "sequence<T>", "map<K, V>"],
        }
    )


@cli.command("size")
def cmd_size(ctx: CodecContext, namespace: argparse.Namespace) -> CommandResult:
    codec = ctx.registry.resolve(namespace.type)
    value = parse_value(codec, namespace.value)
    return CommandResult(
        type="ok",
        data={"type": codec.name, "size": codec.size(value)}
    )


@cli.command("encode")
def cmd_encode(ctx: CodecContext, namespace: argparse.Namespace) -> CommandResult:
    codec = ctx.registry.resolve(namespace.type)
    value = parse_value(codec, namespace.value)
    transfer = BufferTransfer(codec, ctx.allocator, max_size=ctx.max_buffer_size)

    buffer = transfer.lower(value)
    try:
        payload = buffer.to_bytes()
    finally:
        ctx.allocator.free(buffer)

    return CommandResult(
        type="ok",
        data={
            "type": codec.name,
            "size": codec.size(value),
            "length": len(payload),
            "hex": payload.hex(" "),
        }
    )


@cli.command("decode")
def cmd_decode(ctx: CodecContext, namespace: argparse.Namespace) -> CommandResult:
    codec = ctx.registry.resolve(namespace.type)
    payload = bytes.fromhex(namespace.hex)
    transfer = BufferTransfer(codec, ctx.allocator, max_size=ctx.max_buffer_size)

    value = transfer.lift(ctx.allocator.from_bytes(payload))
    return CommandResult(
        type="ok",
        data={"type": codec.name, "value": value}
    )
