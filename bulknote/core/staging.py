"""Staging area for file exports.

Per-item files are written into a run-scoped temporary directory, optionally
grouped into one sub-directory per folder, and finally packed into a single
zip archive.  :func:`staging_area` guarantees the directory is removed once,
whatever happens in between.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator

from .errors import StagingError
from .utils import safe_name

logger = logging.getLogger(__name__)

ID_FRAGMENT = 8


def item_file_name(title: str, item_id: str, ext: str = "md") -> str:
    """``{sanitized title}_{first 8 chars of id}.{ext}``."""
    fragment = safe_name(item_id or "", maxlen=ID_FRAGMENT)[:ID_FRAGMENT]
    return f"{safe_name(title)}_{fragment}.{ext}"


def create_export_filename(prefix: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{prefix}_{now.strftime('%Y-%m-%d_%H-%M-%S')}.zip"


@dataclass
class StagingArea:
    temp_dir: Path
    # item id -> path relative to temp_dir (posix separators)
    file_index: Dict[str, str] = field(default_factory=dict)
    # item id -> folder name the file was filed under
    folder_attribution: Dict[str, str] = field(default_factory=dict)
    removed: bool = False

    def write_item(
        self,
        item_id: str,
        file_name: str,
        content: str,
        folder_name: str | None = None,
    ) -> str:
        """Write *content* and return its relative path inside the area.

        The file name and folder name are sanitized; a name already taken in
        the same directory gets a ``-2``, ``-3``... suffix.
        """
        if self.removed:
            raise StagingError("Staging area already removed")
        stem, dot, ext = safe_name(file_name).rpartition(".")
        if not dot:
            stem, ext = ext, ""
        target_dir = self.temp_dir
        if folder_name:
            target_dir = target_dir / safe_name(folder_name)
        candidate = f"{stem}.{ext}" if ext else stem
        n = 1
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            while (target_dir / candidate).exists():
                n += 1
                candidate = f"{stem}-{n}.{ext}" if ext else f"{stem}-{n}"
            (target_dir / candidate).write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StagingError(f"Could not write {candidate}: {exc}") from exc
        relative = (target_dir / candidate).relative_to(self.temp_dir).as_posix()
        self.file_index[item_id] = relative
        if folder_name:
            self.folder_attribution[item_id] = folder_name
        return relative

    def finalize(self, archive_name: str, out_dir: Path | str) -> Path:
        """Pack every staged file into ``out_dir/archive_name``."""
        if self.removed:
            raise StagingError("Staging area already removed")
        out_dir = Path(out_dir)
        archive_path = out_dir / archive_name
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for path in sorted(self.temp_dir.rglob("*")):
                    if path.is_file():
                        zf.write(path, path.relative_to(self.temp_dir).as_posix())
        except (OSError, zipfile.BadZipFile) as exc:
            if archive_path.is_file():
                archive_path.unlink()
            raise StagingError(f"Could not build archive {archive_path}: {exc}") from exc
        logger.info("archive %s written with %d files", archive_path, len(self.file_index))
        return archive_path

    def cleanup(self) -> None:
        """Remove the directory tree; later calls are no-ops."""
        if self.removed:
            return
        self.removed = True
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logger.debug("staging area %s removed", self.temp_dir)


def stage(prefix: str = "bulknote_export", base_dir: Path | str | None = None) -> StagingArea:
    """Create a uniquely named temporary directory for one run."""
    try:
        path = tempfile.mkdtemp(prefix=f"{prefix}_", dir=base_dir)
    except OSError as exc:
        raise StagingError(f"Could not create staging directory: {exc}") from exc
    return StagingArea(temp_dir=Path(path))


@contextmanager
def staging_area(prefix: str = "bulknote_export", base_dir: Path | str | None = None) -> Iterator[StagingArea]:
    area = stage(prefix, base_dir)
    try:
        yield area
    finally:
        area.cleanup()
