"""Atomic materialization of rendered artifacts."""

import logging
import os
import stat
from pathlib import Path
from typing import List, NamedTuple, Sequence, Union

from vmimage.emitters.base import Artifact
from vmimage.errors import MaterializationFailure
from vmimage.models.image import FileSpec
from vmimage.utils.fs import atomic_write


logger = logging.getLogger(__name__)


class _Backup(NamedTuple):
    path: Path
    content: bytes
    mode: int


def materialize(artifacts: Sequence[Artifact], output_dir: Union[str, Path]) -> List[Path]:
    """Write artifacts under ``output_dir``.

    Every file is replaced atomically with the declared mode. If any write
    fails the output directory is put back the way this call found it:
    replaced files get their previous bytes and mode back, created files
    and directories are removed, and ``MaterializationFailure`` is raised.
    """
    root = Path(output_dir)
    created_dirs: List[Path] = []
    created: List[Path] = []
    backups: List[_Backup] = []
    written: List[Path] = []

    for artifact in artifacts:
        target = root / artifact.path
        missing: List[Path] = []
        try:
            missing = _missing_dirs(target.parent)
            backup = _backup(target)
            atomic_write(target, artifact.content, mode=artifact.mode)
        except (OSError, UnicodeError) as e:
            created_dirs.extend(d for d in missing if d.is_dir())
            _roll_back(created, backups, created_dirs)
            raise MaterializationFailure(
                f"Failed to write {artifact.path}: {getattr(e, 'strerror', None) or e}",
                field=artifact.path,
                context={"path": str(target)},
            ) from e

        created_dirs.extend(missing)
        if backup is None:
            created.append(target)
        else:
            backups.append(backup)
        written.append(target)
        logger.debug(f"Wrote {target} (mode {artifact.mode:04o})")

    logger.info(f"Materialized {len(written)} files into {root}")
    return written


def materialize_files(
    files: Sequence[FileSpec],
    output_dir: Union[str, Path],
    mode: int = 0o644,
) -> List[Path]:
    """Write descriptor files verbatim with one shared mode."""
    return materialize(
        [Artifact(path=spec.filename, content=spec.content, mode=mode) for spec in files],
        output_dir,
    )


def _missing_dirs(directory: Path) -> List[Path]:
    """Ancestors of ``directory`` that do not exist yet, outermost first."""
    missing = []
    while not directory.exists() and directory != directory.parent:
        missing.append(directory)
        directory = directory.parent
    return list(reversed(missing))


def _backup(path: Path):
    if not path.is_file():
        return None
    return _Backup(path, path.read_bytes(), stat.S_IMODE(path.stat().st_mode))


def _roll_back(created: List[Path], backups: List[_Backup], created_dirs: List[Path]):
    for backup in reversed(backups):
        try:
            atomic_write(backup.path, backup.content, mode=backup.mode)
            logger.debug(f"Restored {backup.path}")
        except OSError as e:
            logger.warning(f"Could not restore {backup.path}: {e}")

    for path in reversed(created):
        try:
            os.unlink(path)
            logger.debug(f"Rolled back {path}")
        except OSError as e:
            logger.warning(f"Could not roll back {path}: {e}")

    # Deepest first so parents are empty by the time we reach them
    for directory in sorted(set(created_dirs), key=lambda d: len(d.parts), reverse=True):
        try:
            directory.rmdir()
            logger.debug(f"Removed {directory}")
        except OSError as e:
            logger.warning(f"Could not remove {directory}: {e}")
