"""Streaming extraction of entries from compressed UniProt XML archives."""

from __future__ import annotations

import bz2
from enum import Enum
import gzip
import logging
import os
import xml.etree.ElementTree as ET
import zlib
from typing import BinaryIO, Iterator, NamedTuple, Optional, Tuple

from uniprot_extract.decode import decode_entry, local_tag
from uniprot_extract.errors import (
    CorruptArchiveError,
    DecompressionInitError,
    MalformedXMLError,
    OpenError,
    UniProtExtractError,
)
from uniprot_extract.models import Entry

logger = logging.getLogger(__name__)

ROOT_TAG = "uniprot"
ENTRY_TAG = "entry"
COMPRESSIONS = ("gzip", "bz2")


class StreamState(Enum):
    SEARCHING = "searching"
    IN_CONTAINER = "in_container"
    DONE = "done"
    FAILED = "failed"


class ErrorPolicy(str, Enum):
    """What to do after yielding an entry that failed to decode."""

    STOP = "stop"
    CONTINUE = "continue"


class EntryResult(NamedTuple):
    """One iteration step: an entry (possibly partial) and its error, if any."""

    entry: Optional[Entry]
    error: Optional[UniProtExtractError]


def _guess_compression(path: str) -> str:
    return "bz2" if str(path).endswith(".bz2") else "gzip"


def open_archive(path: str, compression: Optional[str] = None) -> Tuple[BinaryIO, BinaryIO]:
    """Open ``path`` and wrap it in a decompressor.

    Returns ``(raw_handle, decompressed_stream)``. The first byte is peeked so a
    bad header fails here rather than halfway through iteration.

    Raises:
        OpenError: the file cannot be opened.
        DecompressionInitError: the file is not valid ``compression`` data.
    """
    compression = compression or _guess_compression(path)
    if compression not in COMPRESSIONS:
        raise ValueError(f"Unsupported compression {compression!r}, expected one of {COMPRESSIONS}")

    try:
        raw = open(path, "rb")
    except OSError as exc:
        raise OpenError(str(path), exc.strerror or str(exc)) from exc

    try:
        if os.fstat(raw.fileno()).st_size == 0:
            raise EOFError("file is empty")
        if compression == "bz2":
            stream = bz2.BZ2File(raw, "rb")
        else:
            stream = gzip.GzipFile(fileobj=raw, mode="rb")
        try:
            stream.peek(1)
        except BaseException:
            stream.close()
            raise
    except (OSError, EOFError, ValueError) as exc:
        raw.close()
        raise DecompressionInitError(str(path), compression, str(exc)) from exc
    except BaseException:
        raw.close()
        raise

    logger.debug("Opened %s archive %s", compression, path)
    return raw, stream


def iter_tokens(stream: BinaryIO, compression: str = "gzip") -> Iterator[Tuple[str, ET.Element]]:
    """Yield ``("start" | "end", element)`` events from an XML byte stream.

    Character data is available on the element once its ``end`` event fires.

    Raises:
        MalformedXMLError: the stream is not well-formed.
        CorruptArchiveError: the decompressor failed while reading ``stream``.
    """
    try:
        for event, elem in ET.iterparse(stream, events=("start", "end")):
            yield event, elem
    except ET.ParseError as exc:
        line, column = getattr(exc, "position", (None, None))
        raise MalformedXMLError(str(exc), line, column) from exc
    except (OSError, EOFError, zlib.error) as exc:
        raise CorruptArchiveError(compression, str(exc)) from exc


class EntryStream:
    """Lazy, single-pass iterator of ``EntryResult`` steps over one archive.

    The archive is opened on construction; ``OpenError`` and
    ``DecompressionInitError`` are raised before any step is produced. Errors
    found while streaming are yielded as the ``error`` half of a step. The file
    handle and decompressor are released exactly once, whether iteration is
    exhausted, fails, is stopped early through ``close()`` or ``with``, or is
    dropped without ever being iterated.
    """

    def __init__(
        self,
        path: str,
        compression: Optional[str] = None,
        on_error: ErrorPolicy = ErrorPolicy.STOP,
        root_tag: str = ROOT_TAG,
        entry_tag: str = ENTRY_TAG,
    ) -> None:
        self.path = str(path)
        self.compression = compression or _guess_compression(path)
        self.on_error = ErrorPolicy(on_error)
        self.root_tag = root_tag
        self.entry_tag = entry_tag
        self.state = StreamState.SEARCHING
        self.entries_seen = 0
        self.siblings_skipped = 0
        self._raw, self._stream = open_archive(path, self.compression)
        self._closed = False
        self._steps = self._run()

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> "EntryStream":
        return self

    def __next__(self) -> EntryResult:
        return next(self._steps)

    def __enter__(self) -> "EntryStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Stop iteration and release the archive. Safe to call repeatedly."""
        self._steps.close()
        self._release()

    def __del__(self) -> None:
        # A stream that was never iterated has no generator finalizer to run.
        if hasattr(self, "_raw"):
            self._release()

    def _release(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.state not in (StreamState.FAILED, StreamState.DONE):
            self.state = StreamState.DONE
        try:
            self._stream.close()
        finally:
            self._raw.close()
        logger.debug(
            "Closed %s: %d entries, %d siblings skipped, state=%s",
            self.path,
            self.entries_seen,
            self.siblings_skipped,
            self.state.value,
        )

    def _run(self) -> Iterator[EntryResult]:
        depth = 0
        root: Optional[ET.Element] = None
        root_depth = 0
        try:
            for event, elem in iter_tokens(self._stream, self.compression):
                if event == "start":
                    depth += 1
                    if self.state is StreamState.SEARCHING and local_tag(elem.tag) == self.root_tag:
                        self.state = StreamState.IN_CONTAINER
                        root = elem
                        root_depth = depth
                        logger.debug("Found <%s> root at depth %d", self.root_tag, depth)
                    continue

                depth -= 1
                if self.state is StreamState.SEARCHING:
                    elem.clear()
                    continue
                if elem is root:
                    self.state = StreamState.SEARCHING
                    root.clear()
                    root = None
                    continue
                if depth != root_depth:
                    # Still inside a direct child; wait for its end event.
                    continue

                if local_tag(elem.tag) != self.entry_tag:
                    self.siblings_skipped += 1
                    root.clear()
                    continue

                entry, error = decode_entry(elem)
                root.clear()
                self.entries_seen += 1
                if error is None:
                    yield EntryResult(entry, None)
                    continue

                logger.warning("Entry #%d in %s failed to decode: %s", self.entries_seen, self.path, error)
                if self.on_error is ErrorPolicy.STOP:
                    self.state = StreamState.FAILED
                    yield EntryResult(entry, error)
                    return
                yield EntryResult(entry, error)
        except (MalformedXMLError, CorruptArchiveError) as exc:
            self.state = StreamState.FAILED
            logger.warning("Stream error in %s after %d entries: %s", self.path, self.entries_seen, exc)
            yield EntryResult(None, exc)
        else:
            self.state = StreamState.DONE
            logger.info("Finished %s: %d entries", self.path, self.entries_seen)
        finally:
            self._release()


def iter_entries(
    path: str,
    compression: Optional[str] = None,
    on_error: ErrorPolicy = ErrorPolicy.STOP,
    root_tag: str = ROOT_TAG,
    entry_tag: str = ENTRY_TAG,
) -> EntryStream:
    """Open a compressed UniProt XML archive and iterate over its entries.

    Args:
        path: Path to a ``.xml.gz`` (or ``.xml.bz2``) archive.
        compression: ``"gzip"`` or ``"bz2"``; guessed from the suffix if omitted.
        on_error: ``ErrorPolicy.STOP`` ends iteration after the first entry that
            fails to decode; ``ErrorPolicy.CONTINUE`` keeps scanning.
        root_tag: Local name of the root container element.
        entry_tag: Local name of the record elements under the root.

    Returns:
        An ``EntryStream`` yielding ``EntryResult(entry, error)`` pairs.
    """
    return EntryStream(path, compression=compression, on_error=on_error, root_tag=root_tag, entry_tag=entry_tag)


def iter_entries_from_gz(gz_path: str) -> Iterator[Entry]:
    """Iterate over decoded entries, raising the first in-stream error."""
    with iter_entries(gz_path) as entries:
        for entry, error in entries:
            if error is not None:
                raise error
            yield entry
