import argparse
from pathlib import Path
from typing import Any

from bufctl.bootstrap.deps import get_cli
from bufctl.core.model import CodecContext, CommandResult
from bufferlink.core.codec.reader import Reader
from bufferlink.core.codec.registry import TypeExpressionError
from bufferlink.core.errors import BoundaryViolation, MalformedPayloadError
from bufferlink.core.models.buffer import ByteBuffer
from bufferlink.core.trace.recorder import TransferRecord, read_trace

cli = get_cli()


@cli.command("trace")
def cmd_trace(ctx: CodecContext, namespace: argparse.Namespace) -> CommandResult:
    path = Path(namespace.file)
    if not path.is_file():
        raise FileNotFoundError(f"trace file not found: {path}")

    with path.open("rb") as stream:
        records = [
            _describe(ctx, record)
            for record in read_trace(stream, ctx.serializer)
        ]

    return CommandResult(type="ok", data={"records": records})


def _describe(ctx: CodecContext, record: TransferRecord) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "op": record.op,
        "type": record.type,
        "length": len(record.payload),
        "hex": record.payload.hex(" "),
    }

    # Recorded payloads are plain copies; decoding them here never touches
    # a live foreign buffer, so a shape mismatch is reported, not fatal.
    try:
        codec = ctx.registry.resolve(record.type)
        reader = Reader(ByteBuffer(record.payload, len(record.payload)), codec.name)
        entry["value"] = codec.read_from(reader)
        if reader.has_remaining():
            entry["warning"] = f"{reader.remaining} trailing bytes"
    except (TypeExpressionError, MalformedPayloadError, BoundaryViolation) as ex:
        entry["error"] = str(ex)

    return entry
