# src/batch/scanner.py — v2
"""Image scanner: directory walk and image file discovery.

Identifiers are POSIX paths relative to the scan root, so two files with the
same name in different sub-folders stay distinct and results are stable
across platforms.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from imagematch.batch.models import ScanEntry, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSIONS: tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp",
)


class ImageScanner:
    """List image files under a directory.

    Args:
        extensions: Lowercase extensions with leading dot.
    """

    def __init__(self, extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS) -> None:
        self._extensions = frozenset(e.lower() for e in extensions)

    def scan(self, scan_root: Path | str, recursive: bool = True) -> ScanResult:
        """Discover all image files in a directory.

        Hidden files and directories (leading dot) are skipped.

        Raises:
            ValueError: scan_root is not a directory.
        """
        scan_root = Path(scan_root)
        if not scan_root.is_dir():
            msg = f"Scan root is not a directory: {scan_root}"
            raise ValueError(msg)

        entries: list[ScanEntry] = []
        pattern_fn = scan_root.rglob if recursive else scan_root.glob
        for path in sorted(pattern_fn("*")):
            relative = path.relative_to(scan_root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if not path.is_file() or path.suffix.lower() not in self._extensions:
                continue
            entries.append(
                ScanEntry(
                    identifier=relative.as_posix(),
                    file_path=path,
                    size_bytes=path.stat().st_size,
                )
            )

        logger.info(
            "Scanned %s: found %d images (recursive=%s)",
            scan_root, len(entries), recursive,
        )
        return ScanResult(scan_root=scan_root, recursive=recursive, entries=entries)
