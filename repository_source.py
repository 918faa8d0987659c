import contextlib
import gzip
import io
import lzma
import os
from typing import Iterator

import requests

from analyzer_errors import FetchError, IndexReadError

"""
Retrieval of a Packages index as plain text lines.

Two modes:
 - test mode: `locator` is a local path (typically a hand-written test repository)
 - normal mode: `locator` is an HTTP(S) URL of a Packages, Packages.gz or Packages.xz

Compression is picked from the file suffix and removed here, so the parser only
ever sees text. Everything that goes wrong in here is a FetchError.
"""

HTTP_TIMEOUT = 30


def _decompress(payload: bytes, locator: str) -> bytes:
    """Strip .gz / .xz compression based on the locator suffix."""
    try:
        if locator.endswith('.gz'):
            return gzip.decompress(payload)
        if locator.endswith('.xz'):
            return lzma.decompress(payload)
    except (OSError, EOFError, lzma.LZMAError) as e:
        raise FetchError(f"Failed to extract {locator}: {e}") from e
    return payload


def download_packages_file(url: str) -> bytes:
    """
    Download a Packages index and return its decompressed bytes.

    A 404 on a .gz URL is retried once with the .xz sibling, since many
    mirrors only publish Packages.xz nowadays.
    """
    try:
        print(f"Downloading: {url}")
        response = requests.get(url, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        if e.response is not None and e.response.status_code == 404 and url.endswith('.gz'):
            url = url[:-3] + '.xz'
            print(f"Trying alternative format: {url}")
            try:
                response = requests.get(url, timeout=HTTP_TIMEOUT)
                response.raise_for_status()
            except requests.exceptions.RequestException as ex:
                raise FetchError(f"Failed to download {url}: {ex}") from ex
        else:
            raise FetchError(f"HTTP Error for {url}: {e}") from e
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Failed to download {url}: {e}") from e

    return _decompress(response.content, url)


def _open_local_file(path: str):
    if not os.path.isfile(path):
        raise FetchError(f"Local repository file not found: {path}")
    try:
        if path.endswith('.gz'):
            return gzip.open(path, 'rt', encoding='utf-8', errors='replace')
        if path.endswith('.xz'):
            return lzma.open(path, 'rt', encoding='utf-8', errors='replace')
        return open(path, 'r', encoding='utf-8', errors='replace')
    except OSError as e:
        raise FetchError(f"Error opening local file {path}: {e}") from e


@contextlib.contextmanager
def open_packages_source(locator: str, test_mode: bool) -> Iterator[Iterator[str]]:
    """
    Yield an iterator of text lines for the Packages index at `locator`.

        with open_packages_source(cfg.repository_url, cfg.test_mode) as lines:
            records = parse_packages_stream(lines)

    Local files are streamed. Remote indexes are downloaded completely first,
    because they are compressed as a whole anyway.
    """
    if test_mode:
        handle = _open_local_file(locator)
    else:
        payload = download_packages_file(locator)
        handle = io.StringIO(payload.decode('utf-8', errors='replace'))

    with handle:
        yield _iter_lines(handle, locator)


def _iter_lines(handle, locator: str) -> Iterator[str]:
    # a stream that breaks mid-read is a read failure whatever the compression
    try:
        for line in handle:
            yield line
    except (OSError, EOFError, lzma.LZMAError) as e:
        raise IndexReadError(f"Error reading the Packages index {locator}: {e}") from e
