"""Filesystem permission checks and the secure write path.

Config files and saved specs may hold connection strings with credentials,
so files are kept at 0600 and their directories at 0700. Checks never block
a read: a path that cannot be fixed only produces a warning.
"""

import errno
import logging
import os
import stat
import tempfile
import threading
import weakref
from dataclasses import dataclass
from pathlib import Path

from lazycompass.config.paths import ConfigPaths

logger = logging.getLogger(__name__)

# Owner read/write only
FILE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0o600
# Owner read/write/execute only
DIR_MODE = stat.S_IRWXU  # 0o700
# Any group or other bit is a violation
_PERMISSIVE_BITS = stat.S_IRWXG | stat.S_IRWXO


@dataclass(frozen=True)
class PermissionReport:
    """Outcome of checking one path against the permission policy."""

    path: Path
    expected_mode: int
    observed_mode: int
    corrected: bool

    @property
    def warning(self) -> str:
        kind = "directory" if self.expected_mode == DIR_MODE else "file"
        return (
            f"permission warning: {kind} {self.path} has mode "
            f"{self.observed_mode:03o}, expected {self.expected_mode:03o}"
        )


def supports_permissions() -> bool:
    """Whether the platform exposes POSIX permission bits."""
    return os.name == "posix"


def normalize_path(path: Path, fix: bool = True) -> PermissionReport | None:
    """Check a file or directory and tighten its mode if needed.

    Args:
        path: File or directory to check. Missing paths are ignored.
        fix: Rewrite the mode bits when they are too permissive.

    Returns:
        A report when the path violated the policy, None otherwise.
    """
    if not supports_permissions():
        return None

    try:
        st = path.stat()
    except OSError:
        return None

    if stat.S_ISDIR(st.st_mode):
        expected = DIR_MODE
    elif stat.S_ISREG(st.st_mode):
        expected = FILE_MODE
    else:
        return None

    observed = stat.S_IMODE(st.st_mode) & 0o777
    if not observed & _PERMISSIVE_BITS:
        return None

    corrected = False
    if fix:
        try:
            os.chmod(path, expected)
            corrected = True
        except OSError as e:
            logger.debug("Unable to set permissions on %s: %s", path, e)

    report = PermissionReport(path, expected, observed, corrected)
    if corrected:
        logger.info("Tightened permissions on %s from %03o to %03o", path, observed, expected)
    else:
        logger.warning(report.warning)
    return report


def _json_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".json")


def normalize_tree(paths: ConfigPaths, fix: bool = True) -> list[PermissionReport]:
    """Check every config root, config file, and saved spec location.

    Returns:
        Reports for the paths that violated the policy.
    """
    targets: list[Path] = [paths.global_root, paths.global_config_path]
    for directory in (paths.global_queries_dir, paths.global_aggregations_dir):
        targets.append(directory)
        targets.extend(_json_files(directory))

    repo_root = paths.repo_config_root
    if repo_root is not None:
        targets.extend([repo_root, repo_root / "config.toml"])
        for directory in (paths.repo_queries_dir, paths.repo_aggregations_dir):
            if directory is not None:
                targets.append(directory)
                targets.extend(_json_files(directory))

    reports = []
    for target in targets:
        if (report := normalize_path(target, fix=fix)) is not None:
            reports.append(report)
    return reports


def ensure_secure_dir(path: Path) -> None:
    """Create a directory (and parents) and set it to 0700."""
    path.mkdir(parents=True, exist_ok=True)
    if supports_permissions():
        os.chmod(path, DIR_MODE)


_locks_guard = threading.Lock()
# Entries disappear once no writer holds the lock.
_path_locks: "weakref.WeakValueDictionary[Path, threading.RLock]" = (
    weakref.WeakValueDictionary()
)


def path_lock(path: Path) -> threading.RLock:
    """Lock serializing writers of one path within this process.

    The lock is reentrant, so a read-modify-write sequence can hold it
    around a call to write_secure_file.
    """
    key = path.resolve()
    with _locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _path_locks[key] = lock
        return lock


def write_secure_file(path: Path, contents: str, exclusive: bool = False) -> Path:
    """Atomically write a file readable only by its owner.

    Writers of the same path are serialized. The content goes to a temporary
    file in the target directory, is flushed to disk, and is then renamed
    over the destination, so readers see either the old or the new file.

    Args:
        path: Destination file.
        contents: Text to write.
        exclusive: Refuse to replace an existing file. The check happens
            while the path lock is held.

    Returns:
        The destination path.

    Raises:
        FileExistsError: If exclusive is set and the file already exists.
    """
    ensure_secure_dir(path.parent)

    with path_lock(path):
        if exclusive and path.exists():
            raise FileExistsError(errno.EEXIST, "file exists", str(path))
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            if supports_permissions():
                os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    logger.debug("Wrote %s", path)
    return path
