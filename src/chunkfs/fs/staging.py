"""Temporary staging — spool inbound content to disk before chunking.

Content arrives either in memory (``bytes``/``str``) or as a readable
binary stream.  Either way it is copied into a uniquely named temp file
with a fixed-size transfer buffer, so the size can be measured and the
content read back for chunking without holding it all in memory.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import TYPE_CHECKING

from .config import DEFAULT_TRANSFER_SIZE
from .utils import SNIFF_SIZE

if TYPE_CHECKING:
    from types import TracebackType
    from typing import BinaryIO

    Content = bytes | bytearray | memoryview | str

logger = logging.getLogger(__name__)

TEMP_PREFIX = "chunkfs"


class StagedContent:
    """A staged temp file plus what was learned while writing it.

    Use as a context manager; :meth:`release` closes and unlinks the
    file and is safe to call more than once.
    """

    def __init__(self, file: BinaryIO, filename: str, size: int, sample: bytes | None) -> None:
        self.file = file
        self.filename = filename
        self.size = size
        self.sample = sample

    def rewind(self) -> BinaryIO:
        self.file.seek(0)
        return self.file

    def release(self) -> None:
        if not self.file.closed:
            self.file.close()
        try:
            os.unlink(self.filename)
        except FileNotFoundError:
            pass
        else:
            logger.debug("Released staging file %s", self.filename)

    def __enter__(self) -> StagedContent:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def stage(
    content: Content | BinaryIO,
    temp_dir: str | None = None,
    transfer_size: int = DEFAULT_TRANSFER_SIZE,
) -> StagedContent:
    """Copy *content* into a new temp file and return it rewound.

    ``sample`` is set to the leading bytes for in-memory content only;
    streamed content is never sampled.  Raises ``OSError`` if the temp
    file cannot be created or written.
    """
    fd, filename = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=temp_dir)
    file = os.fdopen(fd, "w+b")
    try:
        if isinstance(content, str):
            content = content.encode()

        sample: bytes | None = None
        if isinstance(content, (bytes, bytearray, memoryview)):
            view = memoryview(content).cast("B")
            sample = bytes(view[:SNIFF_SIZE])
            for offset in range(0, len(view), transfer_size):
                file.write(view[offset : offset + transfer_size])
        else:
            while True:
                data = content.read(transfer_size)
                if not data:
                    break
                file.write(data)

        file.flush()
        size = file.tell()
        file.seek(0)
    except BaseException:
        file.close()
        os.unlink(filename)
        raise

    logger.debug("Staged %d bytes in %s", size, filename)
    return StagedContent(file, filename, size, sample)
