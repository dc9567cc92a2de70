"""Byte-offset tailer for a continuously appended log file.

The cursor starts at the file size when watching begins, so content written
before the watch is never replayed, and only moves forward afterwards.
"""

import codecs
import logging
import os
import re

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r'\r?\n')


class LogTailer:
    """Reads exactly the bytes appended since the last poll."""

    def __init__(self, path: str):
        self._path = path
        self._offset = 0
        self._partial = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._shrunk = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def offset(self) -> int:
        return self._offset

    def open(self) -> int:
        """Position the cursor at the current end of file.

        Raises OSError (FileNotFoundError, IsADirectoryError, ...) when the
        path is not an openable regular file.
        """
        with open(self._path, "rb") as fh:
            size = os.fstat(fh.fileno()).st_size
        self.reset()
        self._offset = size
        logger.debug("Opened %s at offset %d", self._path, size)
        return size

    def reset(self) -> None:
        self._offset = 0
        self._partial = ""
        self._decoder.reset()
        self._shrunk = False

    def read_new_lines(self) -> list[str]:
        """Read [offset, size), advance the cursor, return complete non-blank lines."""
        size = os.stat(self._path).st_size
        if size < self._offset:
            if not self._shrunk:
                logger.warning(
                    "File %s shrank below cursor (%d < %d), waiting for it to grow",
                    self._path, size, self._offset,
                )
                self._shrunk = True
            return []
        self._shrunk = False
        if size == self._offset:
            return []

        with open(self._path, "rb") as fh:
            fh.seek(self._offset)
            data = fh.read(size - self._offset)
        # Advance even if the caller fails to process these lines.
        self._offset += len(data)

        text = self._partial + self._decoder.decode(data)
        lines = _LINE_SPLIT_RE.split(text)
        # The last element is an unterminated fragment ("" when text ends with \n).
        self._partial = lines.pop()
        return [line for line in lines if line.strip()]
