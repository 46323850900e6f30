"""Document storage collaborators.

Form schemas, codelists, harvested data and persisted form data are Turtle
documents addressed by URI. ``share://`` URIs resolve below a configured
share root; ``file://`` URIs are absolute paths.
"""

import logging
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

from typing_extensions import Protocol, runtime_checkable

from formgate.errors import IOFailureError

logger = logging.getLogger(__name__)

SHARE_SCHEME = "share://"


@runtime_checkable
class FileContent(Protocol):
    """Content-addressed document storage."""

    def read(self, uri: str) -> str:
        ...

    def write(self, uri: str, content: str) -> int:
        ...


class InMemoryFileContent:
    """Documents kept in a dictionary, keyed by URI.

    Examples:
        >>> files = InMemoryFileContent({"share://a.ttl": "<a> <b> <c> ."})
        >>> files.write("share://b.ttl", "")
        0
        >>> sorted(files.uris())
        ['share://a.ttl', 'share://b.ttl']
    """

    def __init__(self, documents: Optional[Dict[str, str]] = None) -> None:
        self._documents: Dict[str, str] = dict(documents or {})

    def read(self, uri: str) -> str:
        try:
            return self._documents[uri]
        except KeyError:
            raise IOFailureError(f"No document at <{uri}>") from None

    def write(self, uri: str, content: str) -> int:
        self._documents[uri] = content
        return len(content.encode("utf-8"))

    def uris(self):
        return list(self._documents)


class ShareFileContent:
    """Documents on a local filesystem.

    Attributes:
        share_root: Directory that ``share://`` URIs resolve below
    """

    def __init__(self, share_root: str) -> None:
        self.share_root = Path(share_root)

    def path_for(self, uri: str) -> Path:
        """Local path of a document URI.

        Raises:
            IOFailureError: If a ``share://`` URI points outside the share root
        """
        if uri.startswith(SHARE_SCHEME):
            root = self.share_root.resolve()
            path = (root / uri[len(SHARE_SCHEME):]).resolve()
            if root not in path.parents:
                raise IOFailureError(f"<{uri}> is outside the share root")
            return path
        if uri.startswith("file://"):
            return Path(unquote(urlparse(uri).path))
        return Path(uri)

    def read(self, uri: str) -> str:
        path = self.path_for(uri)
        logger.debug("Getting contents of file %s", path)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IOFailureError(f"Failed to read <{uri}>: {exc}") from exc

    def write(self, uri: str, content: str) -> int:
        path = self.path_for(uri)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            return path.stat().st_size
        except OSError as exc:
            raise IOFailureError(f"Failed to write <{uri}>: {exc}") from exc


__all__ = [
    "SHARE_SCHEME",
    "FileContent",
    "InMemoryFileContent",
    "ShareFileContent",
]
