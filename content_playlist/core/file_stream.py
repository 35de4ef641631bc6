"""File stream with transparent RZIP compression.

Playlists can be stored either as plain text or inside an RZIP container,
a chunked zlib format that keeps a small fixed header so readers can tell
the two apart without relying on the file extension::

    offset  size  field
    0       8     magic  '#RZIPv' + version byte (1) + '#'
    8       4     chunk size (uncompressed bytes per chunk, little endian)
    12      8     total uncompressed size (little endian)
    20      ...   chunks: 4-byte compressed length + zlib stream

Reading always goes through :func:`open_read`, which detects the header
and decompresses when needed.  Writing compresses only when asked to.
Streams are context managers; the underlying file handle is released on
both success and error paths.
"""

from __future__ import annotations

import io
import os
import struct
import zlib
from pathlib import Path
from typing import BinaryIO

from loguru import logger

RZIP_MAGIC = b"#RZIPv\x01#"
RZIP_HEADER_SIZE = 20
RZIP_DEFAULT_CHUNK_SIZE = 131072
RZIP_COMPRESSION_LEVEL = 6


class RzipError(ValueError):
    """Raised when an RZIP container is truncated or malformed."""


def rzip_compress(data: bytes, chunk_size: int = RZIP_DEFAULT_CHUNK_SIZE) -> bytes:
    out = bytearray(RZIP_MAGIC)
    out += struct.pack("<IQ", chunk_size, len(data))
    for start in range(0, len(data), chunk_size):
        chunk = zlib.compress(data[start:start + chunk_size], RZIP_COMPRESSION_LEVEL)
        out += struct.pack("<I", len(chunk))
        out += chunk
    return bytes(out)


def rzip_decompress(handle: BinaryIO) -> bytes:
    """Decompress an RZIP container read from *handle*."""
    header = handle.read(RZIP_HEADER_SIZE)
    if len(header) < RZIP_HEADER_SIZE or not header.startswith(RZIP_MAGIC):
        raise RzipError("missing RZIP header")

    chunk_size, total_size = struct.unpack("<IQ", header[len(RZIP_MAGIC):])
    if chunk_size == 0 and total_size:
        raise RzipError("invalid chunk size")

    out = bytearray()
    while len(out) < total_size:
        size_field = handle.read(4)
        if len(size_field) < 4:
            raise RzipError(f"truncated after {len(out)} of {total_size} bytes")
        (compressed_size,) = struct.unpack("<I", size_field)
        chunk = handle.read(compressed_size)
        if len(chunk) < compressed_size:
            raise RzipError("truncated chunk")
        out += zlib.decompress(chunk)
    return bytes(out[:total_size])


class FileStream:
    """Byte stream over a playlist file.

    Use :func:`open_read` / :func:`open_write` rather than constructing
    this directly.
    """

    def __init__(
        self,
        path: Path,
        handle: BinaryIO,
        *,
        compressed: bool,
        target: BinaryIO | None = None,
    ) -> None:
        self._path = path
        self._handle = handle
        self._target = target
        self._compressed = compressed
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_compressed(self) -> bool:
        return self._compressed

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        return self._handle.read(size)

    def readline(self) -> bytes:
        return self._handle.readline()

    def getc(self) -> int | None:
        """Return the next byte as an ``int``, or ``None`` at end of file."""
        b = self._handle.read(1)
        return b[0] if b else None

    def rewind(self) -> None:
        self._handle.seek(0)

    def eof(self) -> bool:
        pos = self._handle.tell()
        if isinstance(self._handle, io.BytesIO):
            return pos >= self._handle.getbuffer().nbytes
        return pos >= os.fstat(self._handle.fileno()).st_size

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._handle.write(data)

    def close(self) -> None:
        """Flush (compressing if needed) and release the file handle."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._target is not None:
                payload = self._handle.getvalue()  # type: ignore[attr-defined]
                self._target.write(rzip_compress(payload))
        finally:
            self._handle.close()
            if self._target is not None:
                self._target.close()

    def __enter__(self) -> FileStream:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def open_read(path: str | Path) -> FileStream | None:
    """Open *path* for reading, decompressing RZIP data transparently.

    Returns ``None`` if the file does not exist or cannot be opened.
    """
    path = Path(path)
    if not path.is_file():
        return None
    try:
        with open(path, "rb") as f:
            if f.read(len(RZIP_MAGIC)) == RZIP_MAGIC:
                f.seek(0)
                data = rzip_decompress(f)
                return FileStream(path, io.BytesIO(data), compressed=True)
        return FileStream(path, open(path, "rb"), compressed=False)
    except (OSError, RzipError, zlib.error) as e:
        logger.error("Failed to open playlist file {}: {}", path, e)
        return None


def open_write(path: str | Path, compress: bool = False) -> FileStream | None:
    """Open *path* for writing, truncating it.

    With *compress* the data is buffered and written as an RZIP container
    when the stream is closed.  Returns ``None`` if the file cannot be
    opened.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(path, "wb")
    except OSError as e:
        logger.error("Failed to open {} for writing: {}", path, e)
        return None
    if compress:
        return FileStream(path, io.BytesIO(), compressed=True, target=handle)
    return FileStream(path, handle, compressed=False)
