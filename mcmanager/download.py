"""Definition of the artifact fetcher, used to download client JARs and loader 
installers into installation directories.
"""

from http.client import HTTPException
from pathlib import Path
import os

from .http import http_open, HttpError
from .standard import Context
from .task import Watcher

from typing import Optional


class ArtifactFetcher:
    """Download a single URL into a directory. The body is first streamed to a file in
    the context's scratch directory and then moved with a single atomic rename to its
    destination, a partially downloaded file is never visible under its final name.
    """

    def __init__(self, context: Context, *, buffer_len: int = 65536) -> None:
        self.context = context
        self.buffer_len = buffer_len

    def fetch(self, url: str, dst_dir: Path, filename: str, *, 
        watcher: Optional[Watcher] = None
    ) -> Path:
        """Fetch the given URL into the destination directory, which must exist.

        :return: The path of the downloaded file, `dst_dir / filename`.
        :raises ArtifactFetchFailed: If the download or the final move failed, in such
        case the destination is left untouched.
        """

        watcher = watcher or Watcher()
        dst = dst_dir / filename
        tmp = self.context.gen_tmp_path()

        watcher.handle(ArtifactFetchingEvent(url, dst))

        try:
            tmp.parent.mkdir(parents=True, exist_ok=True)
            size = self._stream(url, tmp)
            os.replace(tmp, dst)
        except (HttpError, HTTPException, OSError) as error:
            raise ArtifactFetchFailed(url, error)
        finally:
            # Only present if the move didn't happen.
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass

        watcher.handle(ArtifactFetchedEvent(url, dst, size))
        return dst

    def _stream(self, url: str, tmp: Path) -> int:
        """Internal function to stream the URL's body into the temporary file.
        """

        size = 0
        with http_open(url) as res, tmp.open("wb") as tmp_fp:
            while True:
                chunk = res.read(self.buffer_len)
                if not chunk:
                    break
                tmp_fp.write(chunk)
                size += len(chunk)

        return size


class ArtifactFetchFailed(Exception):
    """Raised when an artifact could not be downloaded or moved to its destination.
    The original error is given in `origin`.
    """

    def __init__(self, url: str, origin: Exception) -> None:
        self.url = url
        self.origin = origin

    def __str__(self) -> str:
        return f"{self.url}: {self.origin}"


class ArtifactFetchingEvent:
    """Event triggered when an artifact starts downloading.
    """
    __slots__ = "url", "dst"
    def __init__(self, url: str, dst: Path) -> None:
        self.url = url
        self.dst = dst


class ArtifactFetchedEvent:
    """Event triggered when an artifact has been downloaded and moved to its 
    destination.
    """
    __slots__ = "url", "dst", "size"
    def __init__(self, url: str, dst: Path, size: int) -> None:
        self.url = url
        self.dst = dst
        self.size = size
