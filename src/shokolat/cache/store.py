"""File-per-URL mirror store with streamed reads and write-once publishing.

The store keeps no metadata: an entry is a regular file at its key path and
nothing else.  Entries are never expired or overwritten.

Writes go to a hidden temporary file in the destination directory, which is
flushed, fsynced, and then published with :func:`os.link`.  Linking fails
atomically when the destination already exists, so when two requests race
to mirror the same URL the first one to publish wins and the loser simply
discards its temp file.  A reader therefore only ever sees complete files,
and an in-flight read keeps its own descriptor even if another entry is
published meanwhile.

The store raises :class:`OSError` on failure; deciding whether a failure
is fatal is left to the caller (the engines log and degrade).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

DEFAULT_CHUNK_SIZE = 64 * 1024
"""Read size used when streaming an entry."""

DIR_MODE = 0o755
FILE_MODE = 0o644


class CachedObject:
    """An open cache entry, streamed rather than loaded into memory.

    ``size`` comes from ``fstat`` on the already-open descriptor, so it
    always describes the bytes this object will yield.  Use as a context
    manager, or call :meth:`close` once the body has been sent.

    Example::

        with store.open(path) as entry:
            for chunk in entry.iter_chunks():
                sink.write(chunk)
    """

    def __init__(self, path: Path, handle: BinaryIO) -> None:
        self.path = path
        self._handle = handle
        self.size = os.fstat(handle.fileno()).st_size

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the entry's bytes in chunks of at most *chunk_size*."""
        while True:
            chunk = self._handle.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def read(self) -> bytes:
        """Read the remaining bytes in one call."""
        return self._handle.read()

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> CachedObject:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CachedObject(path={str(self.path)!r}, size={self.size})"


class CacheStore:
    """Existence checks, streamed reads, and write-once writes of cache entries."""

    def exists(self, path: Path) -> bool:
        """Return ``True`` if a regular file is stored at *path*."""
        return path.is_file()

    def open(self, path: Path) -> CachedObject:
        """Open the entry at *path* for streamed reading.

        Raises:
            OSError: If the file vanished or cannot be opened.
        """
        handle = open(path, "rb")
        try:
            return CachedObject(path, handle)
        except OSError:
            handle.close()
            raise

    def write(self, path: Path, body: bytes | Iterable[bytes]) -> bool:
        """Store *body* at *path* unless an entry already exists there.

        Missing parent directories are created.  The body is written in
        full to a temporary sibling before it becomes visible at *path*.

        Args:
            path: Destination cache key.
            body: The full body, or an iterable of chunks.

        Returns:
            ``True`` if this call published the entry, ``False`` if an
            entry was already present (the existing bytes are kept).

        Raises:
            OSError: On directory creation or write failure.
        """
        path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)

        chunks = (body,) if isinstance(body, (bytes, bytearray, memoryview)) else body
        tmp_path: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fd:
                tmp_path = fd.name
                for chunk in chunks:
                    fd.write(chunk)
                fd.flush()
                os.fsync(fd.fileno())
            os.chmod(tmp_path, FILE_MODE)
            try:
                os.link(tmp_path, path)
            except FileExistsError:
                return False
            return True
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
