"""
Snapshot serialization of a horizon chain state.

A snapshot is a JSON document holding every header plus the UTXO and kernel
MMR leaves in insertion order, so a MemoryBackend can be rebuilt with the
same leaf indices and MMR roots:

    {"version": 1,
     "headers": [...],
     "outputs": [{"output": {...}, "height": h, "spent_height": h | null}],
     "kernels": [{"kernel": {...}, "height": h}]}
"""

import logging
from pathlib import Path
from typing import Any, Union

import orjson
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ChainStorageError, SnapshotError
from .blockchain import BlockHeader
from .storage import KernelEntry, MemoryBackend, OutputEntry

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def fast_json_dumps(obj: Any, indent: bool = False) -> bytes:
    """Serialize to JSON bytes with sorted keys."""
    options = orjson.OPT_SORT_KEYS
    if indent:
        options |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=options)


def fast_json_loads(data: Union[bytes, str]) -> Any:
    if isinstance(data, str):
        data = data.encode()
    return orjson.loads(data)


def snapshot_to_dict(backend: MemoryBackend) -> dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "headers": [h.to_dict() for h in backend.headers],
        "outputs": [
            {"output": e.output.to_dict(), "height": e.height, "spent_height": e.spent_height}
            for e in backend.output_entries
        ],
        "kernels": [
            {"kernel": e.kernel.to_dict(), "height": e.height}
            for e in backend.kernel_entries
        ],
    }


def snapshot_from_dict(data: dict[str, Any]) -> MemoryBackend:
    """
    Rebuild a MemoryBackend from a snapshot document.

    Raises:
        SnapshotError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a JSON object")
    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version: {version!r}")

    backend = MemoryBackend()
    try:
        for item in data["headers"]:
            backend.insert_header(BlockHeader.from_dict(item))
        for item in data["outputs"]:
            backend.restore_output(OutputEntry.model_validate(item))
        for item in data["kernels"]:
            entry = KernelEntry.model_validate(item)
            backend.insert_kernel(entry.kernel, entry.height)
    except KeyError as e:
        raise SnapshotError(f"Snapshot is missing {e}") from e
    except (PydanticValidationError, ChainStorageError, TypeError, ValueError) as e:
        raise SnapshotError(f"Invalid snapshot: {e}") from e

    return backend


def dump_snapshot(backend: MemoryBackend, path: Union[str, Path]) -> None:
    """Write backend to path as a snapshot."""
    path = Path(path)
    try:
        path.write_bytes(fast_json_dumps(snapshot_to_dict(backend), indent=True))
    except OSError as e:
        raise SnapshotError(f"Cannot write snapshot: {e}", str(path)) from e
    logger.info(f"Wrote snapshot {path} ({backend!r})")


def load_snapshot(path: Union[str, Path]) -> MemoryBackend:
    """Read a snapshot into a new MemoryBackend."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot: {e}", str(path)) from e

    try:
        data = fast_json_loads(raw)
    except orjson.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}", str(path)) from e

    try:
        backend = snapshot_from_dict(data)
    except SnapshotError as e:
        e.path = str(path)
        raise
    logger.debug(f"Loaded snapshot {path} ({backend!r})")
    return backend


__all__ = [
    "SNAPSHOT_VERSION",
    "dump_snapshot",
    "load_snapshot",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "fast_json_dumps",
    "fast_json_loads",
]
