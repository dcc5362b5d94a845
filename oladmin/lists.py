"""
Line-oriented list files (servers, hosts, file paths).

Format: UTF-8 text, one entry per line. Blank lines and lines whose first
non-whitespace character is '#' are skipped. Entries are trimmed; embedded
whitespace is kept verbatim. No other validation happens here, so a bad
address only shows up later as a failed transfer.
"""

from pathlib import Path
from typing import Iterator, List, Optional, Union

from .errors import NotFoundError


def parse_line(line: str) -> Optional[str]:
    """Return the entry on a line, or None when the line is blank or a comment."""
    entry = line.strip()
    if not entry or entry.startswith("#"):
        return None
    return entry


class ListFile:
    """
    Lazy, restartable view over the entries of a list file.

    Each iteration re-opens the file and reads it line by line.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise NotFoundError(str(self.path), "List file")

    def __iter__(self) -> Iterator[str]:
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                entry = parse_line(line)
                if entry is not None:
                    yield entry

    def __repr__(self) -> str:
        return f"ListFile({str(self.path)!r})"


def load_entries(path: Union[str, Path]) -> List[str]:
    return list(ListFile(path))
