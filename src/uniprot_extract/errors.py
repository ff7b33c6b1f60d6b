"""Exceptions raised or yielded while streaming UniProt XML archives."""

from __future__ import annotations

from typing import Optional, Sequence


class UniProtExtractError(Exception):
    """Base class for all extraction errors."""


class OpenError(UniProtExtractError):
    """The archive could not be opened."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        message = f"Cannot open archive: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class DecompressionInitError(UniProtExtractError):
    """The archive is not valid data for the declared compression."""

    def __init__(self, path: str, compression: str, reason: str = "") -> None:
        self.path = path
        self.compression = compression
        message = f"Not a valid {compression} stream: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class CorruptArchiveError(UniProtExtractError):
    """The compressed stream broke partway through, e.g. truncated or a bad CRC.

    Terminal, like ``MalformedXMLError``.
    """

    def __init__(self, compression: str, reason: str = "") -> None:
        self.compression = compression
        message = f"Corrupt {compression} stream"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedXMLError(UniProtExtractError):
    """The decompressed stream is not well-formed XML.

    Terminal: no entries are produced after this error.
    """

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> None:
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class RecordShapeError(UniProtExtractError):
    """An entry subtree could not be mapped onto the typed record."""

    def __init__(self, accession: Optional[str], problems: Sequence[str]) -> None:
        self.accession = accession
        self.problems = tuple(problems)
        label = accession or "<no accession>"
        summary = "; ".join(self.problems)
        super().__init__(f"Cannot decode entry {label}: {summary}")
