"""Stub files, readers, writers and hashes that record every call made on them.

Each stub records its calls on a shared :class:`~testsupport.stub.Stub`
and takes its next error from it. A queued error is raised. Methods that
cannot fail still take one entry off the error queue and ignore it.
"""

from __future__ import annotations

import io
import stat
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Optional

from testsupport.stub import Stub


def _raise_next(stub: Stub) -> None:
    err = stub.next_err()
    if err is not None:
        raise err


@dataclass
class StubReader:
    """Records ``Read`` calls and reads from ``return_read`` when set."""

    stub: Stub
    return_read: Optional[Any] = None

    def read(self, size: int = -1) -> bytes:
        self.stub.add_call("Read", size)
        _raise_next(self.stub)
        if self.return_read is None:
            return b""
        return self.return_read.read(size)


def new_stub_reader(stub: Stub, content: str) -> StubReader:
    """A reader that returns ``content``, encoded as UTF-8."""
    return StubReader(stub, io.BytesIO(content.encode()))


@dataclass
class StubWriter:
    """Records ``Write`` calls and writes to ``return_write`` when set."""

    stub: Stub
    return_write: Optional[Any] = None

    def write(self, data: bytes) -> int:
        self.stub.add_call("Write", data)
        _raise_next(self.stub)
        if self.return_write is None:
            return 0
        return self.return_write.write(data)


def new_stub_writer(stub: Stub) -> tuple[StubWriter, io.BytesIO]:
    """A writer and the buffer that collects what is written to it."""
    buffer = io.BytesIO()
    return StubWriter(stub, buffer), buffer


@dataclass
class StubSeeker:
    """Records ``Seek`` calls and returns ``return_seek``."""

    stub: Stub
    return_seek: int = 0

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self.stub.add_call("Seek", offset, whence)
        _raise_next(self.stub)
        return self.return_seek


@dataclass
class StubCloser:
    """Records ``Close`` calls."""

    stub: Stub

    def close(self) -> None:
        self.stub.add_call("Close")
        _raise_next(self.stub)


@dataclass
class FileInfo:
    """Plain file metadata; ``mode`` holds stat-style mode bits."""

    name: str = ""
    size: int = 0
    mode: int = 0
    mod_time: Optional[datetime] = None


@dataclass
class StubFileInfo:
    """File metadata whose accessors are recorded on the stub."""

    stub: Stub
    info: FileInfo = field(default_factory=FileInfo)
    return_sys: Any = None

    def _record(self, name: str) -> None:
        self.stub.add_call(name)
        self.stub.next_err()

    def name(self) -> str:
        self._record("Name")
        return self.info.name

    def size(self) -> int:
        self._record("Size")
        return self.info.size

    def mode(self) -> int:
        self._record("Mode")
        return self.info.mode

    def mod_time(self) -> Optional[datetime]:
        self._record("ModTime")
        return self.info.mod_time

    def is_dir(self) -> bool:
        self._record("IsDir")
        return stat.S_ISDIR(self.info.mode)

    def sys(self) -> Any:
        self._record("Sys")
        return self.return_sys


def new_stub_file_info(stub: Stub, name: str, content: str) -> StubFileInfo:
    """Metadata for a plain file called ``name`` holding ``content``."""
    return StubFileInfo(
        stub,
        FileInfo(
            name=name,
            size=len(content.encode()),
            mode=0o644,
            mod_time=datetime.now(),
        ),
    )


@dataclass
class StubFile:
    """A file made of stub parts, all recording on the same stub."""

    stub: Stub
    reader: Any = None
    writer: Any = None
    seeker: Any = None
    closer: Any = None
    info: Optional[StubFileInfo] = None

    def __post_init__(self) -> None:
        if self.reader is None:
            self.reader = StubReader(self.stub)
        if self.writer is None:
            self.writer = StubWriter(self.stub)
        if self.seeker is None:
            self.seeker = StubSeeker(self.stub)
        if self.closer is None:
            self.closer = StubCloser(self.stub)
        if self.info is None:
            self.info = StubFileInfo(self.stub)

    def read(self, size: int = -1) -> bytes:
        return self.reader.read(size)

    def write(self, data: bytes) -> int:
        return self.writer.write(data)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        return self.seeker.seek(offset, whence)

    def close(self) -> None:
        self.closer.close()

    def name(self) -> str:
        self.stub.add_call("Name")
        self.stub.next_err()
        return self.info.info.name

    def stat(self) -> StubFileInfo:
        self.stub.add_call("Stat")
        _raise_next(self.stub)
        return self.info

    def sync(self) -> None:
        self.stub.add_call("Sync")
        _raise_next(self.stub)

    def truncate(self, size: int) -> None:
        self.stub.add_call("Truncate", size)
        _raise_next(self.stub)


def new_stub_file(stub: Stub, raw: Optional[BinaryIO]) -> StubFile:
    """A stub file that reads from and writes to ``raw``."""
    return StubFile(
        stub,
        reader=StubReader(stub, raw),
        writer=StubWriter(stub, raw),
        seeker=StubSeeker(stub),
        closer=StubCloser(stub),
    )


@dataclass
class StubHash:
    """A hash whose methods are recorded and return preset values."""

    stub: Stub
    writer: Any = None
    return_sum: bytes = b""
    return_size: int = 0
    return_block_size: int = 0

    def __post_init__(self) -> None:
        if self.writer is None:
            self.writer = StubWriter(self.stub)

    def _record(self, name: str, *args: Any) -> None:
        self.stub.add_call(name, *args)
        self.stub.next_err()

    def write(self, data: bytes) -> int:
        return self.writer.write(data)

    def sum(self, b: bytes) -> bytes:
        self._record("Sum", b)
        return self.return_sum

    def reset(self) -> None:
        self._record("Reset")

    def size(self) -> int:
        self._record("Size")
        return self.return_size

    def block_size(self) -> int:
        self._record("BlockSize")
        return self.return_block_size


def new_stub_hash(stub: Stub, raw: Optional[Any]) -> StubHash:
    """A stub hash whose writes go to ``raw``."""
    return StubHash(stub, writer=StubWriter(stub, raw))