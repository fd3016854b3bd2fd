"""Local archive handling for directory-based deployments."""

import os
import subprocess
from pathlib import Path
from typing import Optional

from fastdeploy.telemetry.logger import get_logger

logger = get_logger(__name__)


class ArchiveError(Exception):
    """Raised when a local archive cannot be created or removed."""


def resolve_local_path(path: str, cwd: Optional[Path] = None) -> Path:
    """Absolute, normalized form of a configured local path."""
    base = cwd or Path.cwd()
    expanded = os.path.expanduser(path)
    if not os.path.isabs(expanded):
        expanded = os.path.join(base, expanded)
    return Path(os.path.normpath(expanded))


class LocalArchiver:
    """Creates and removes the transient ``.tar.gz`` of a build directory."""

    def __init__(self, timeout: float = 300.0) -> None:
        self.timeout = timeout

    def archive_path(self, directory: Path) -> Path:
        """Where the archive of ``directory`` is written: beside it."""
        return directory.parent / f"{directory.name}.tar.gz"

    def create(self, directory: Path) -> Path:
        """Archive ``directory`` so that it extracts to ``<name>/``.

        Args:
            directory: Absolute directory to archive

        Returns:
            Path to the created archive

        Raises:
            ArchiveError: If tar fails or the directory is missing
        """
        if not directory.is_dir():
            raise ArchiveError(f"Not a directory: {directory}")

        archive = self.archive_path(directory)
        cmd = ["tar", "-zcf", str(archive), "-C", str(directory.parent), directory.name]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ArchiveError(f"Command not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ArchiveError(f"tar timed out after {self.timeout} seconds") from e
        except OSError as e:
            raise ArchiveError(f"Failed to run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            raise ArchiveError(result.stderr.strip() or f"tar exited with status {result.returncode}")

        logger.debug("Created local archive", directory=str(directory), archive=str(archive))
        return archive

    def remove(self, archive: Path) -> None:
        """Delete a local archive; an already-missing file is fine.

        Raises:
            ArchiveError: If the file exists but cannot be removed
        """
        try:
            archive.unlink(missing_ok=True)
        except OSError as e:
            raise ArchiveError(f"Failed to remove {archive}: {e}") from e
