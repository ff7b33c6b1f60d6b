"""Fetch a UniProtKB XML release, resuming an interrupted transfer."""

from __future__ import annotations

import logging
import os
from typing import Optional

import requests
from tqdm import tqdm

from uniprot_extract.errors import DecompressionInitError
from uniprot_extract.extract import open_archive

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


def remote_size(url: str) -> Optional[int]:
    """Size reported by a HEAD request, or None when the server does not say."""
    try:
        response = requests.head(url, allow_redirects=True, timeout=30)
        response.raise_for_status()
        return int(response.headers["Content-Length"])
    except (requests.RequestException, KeyError, ValueError) as exc:
        logger.debug("No usable size for %s: %s", url, exc)
        return None


def verify_archive(path: str) -> None:
    """Check that ``path`` starts with a valid compressed header.

    Raises:
        RuntimeError: the file is not a readable archive.
    """
    try:
        raw, stream = open_archive(path)
    except DecompressionInitError as exc:
        raise RuntimeError(f"Downloaded file is not a valid archive: {path}") from exc
    try:
        stream.close()
    finally:
        raw.close()


def _save(response: requests.Response, out_path: str, offset: int, total: Optional[int]) -> None:
    with open(out_path, "ab" if offset else "wb") as handle, tqdm(
        total=total, initial=offset, unit="B", unit_scale=True, desc=os.path.basename(out_path)
    ) as progress:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if chunk:
                handle.write(chunk)
                progress.update(len(chunk))


def download_dump(url: str, out_path: str) -> str:
    """Download the release at ``url`` to ``out_path`` and return the path.

    A partial file is continued with a ``Range`` request when the server reports
    the full size; a server that answers with the whole body restarts the file.
    The result is checked with ``open_archive`` so a saved error page fails here.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)

    total = remote_size(url)
    have = os.path.getsize(out_path) if os.path.exists(out_path) else 0
    if total and have >= total:
        logger.info("%s already complete (%d bytes)", out_path, have)
        verify_archive(out_path)
        return out_path

    offset = have if total else 0
    headers = {"Range": f"bytes={offset}-"} if offset else {}
    if offset:
        logger.info("Resuming %s from byte %d of %d", out_path, offset, total)

    with requests.get(url, headers=headers, stream=True, timeout=60) as response:
        response.raise_for_status()
        if offset and response.status_code != 206:
            logger.info("Range request ignored, restarting %s", out_path)
            offset = 0
        if not total:
            total = int(response.headers.get("Content-Length") or 0) or None
        _save(response, out_path, offset, total)

    if os.path.getsize(out_path) == 0:
        raise RuntimeError(f"Download produced an empty file: {out_path}")

    verify_archive(out_path)
    return out_path
