"""
tar.gz archive creation and extraction for rotated log files
"""

import os
import shutil
import tarfile
from pathlib import PurePosixPath
from typing import BinaryIO, Optional, Sequence, Union

from .exceptions import ArchiveError

ARCHIVE_SUFFIX = ".tar.gz"


def is_archive(path: str) -> bool:
    """Check whether ``path`` names an archive produced by create_archive"""
    return path.endswith(ARCHIVE_SUFFIX)


def member_name(filename: str) -> str:
    """
    Name a file is stored under in an archive

    The path is normalized and leading ``/`` and ``..`` segments are dropped,
    so ``../logs/a.log`` is stored as ``logs/a.log`` and extracts back under
    the destination directory.
    """
    normalized = os.path.normpath(filename).replace(os.sep, "/")
    parts = [p for p in PurePosixPath(normalized).parts if p not in ("/", "..")]
    return "/".join(parts) or os.path.basename(filename)


def create_archive(
    archive_name: str, files: Sequence[str], compression_level: int = 6
) -> None:
    """
    Create a gzip-compressed tar archive such as ``a/b/c.tar.gz``

    Each file is stored under its normalized relative path (see member_name)
    so extraction restores the directory layout. A partially written archive
    is removed on failure.

    Raises:
        ArchiveError: if any source cannot be read or the archive cannot be written
    """
    try:
        with tarfile.open(
            archive_name, "w:gz", compresslevel=compression_level
        ) as tar:
            for filename in files:
                tar.add(filename, arcname=member_name(filename), recursive=False)
    except (OSError, tarfile.TarError) as e:
        if os.path.exists(archive_name):
            os.remove(archive_name)
        raise ArchiveError(f"create {archive_name} failed: {e}") from e


def _safe_member_path(name: str, dest_dir: str) -> str:
    parts = PurePosixPath(name).parts
    if not parts or name.startswith("/") or ".." in parts:
        raise ArchiveError(f"refusing to extract unsafe member {name!r}")
    return os.path.join(dest_dir, *parts)


def extract_archive(
    source: Union[str, os.PathLike, BinaryIO], dest_dir: Optional[str] = None
) -> None:
    """
    Extract a gzip-compressed tar archive

    ``source`` is a path or a readable binary stream. Member paths are
    recreated relative to ``dest_dir`` (the current directory by default).
    Only directories and regular files are supported; any other member
    kind aborts the extraction.

    Raises:
        ArchiveError: on a corrupt stream, an unsupported or unsafe member
    """
    dest_dir = dest_dir or os.curdir

    try:
        if isinstance(source, (str, os.PathLike)):
            tar = tarfile.open(source, "r:gz")
        else:
            tar = tarfile.open(fileobj=source, mode="r|gz")
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(f"open archive failed: {e}") from e

    with tar:
        try:
            for member in tar:
                target = _safe_member_path(member.name, dest_dir)
                if member.isdir():
                    os.makedirs(target, exist_ok=True)
                elif member.isfile():
                    parent = os.path.dirname(target)
                    if parent:
                        os.makedirs(parent, exist_ok=True)
                    reader = tar.extractfile(member)
                    with reader, open(target, "wb") as out:
                        shutil.copyfileobj(reader, out)
                else:
                    raise ArchiveError(
                        f"unsupported member type {member.type!r} in {member.name}"
                    )
        except (OSError, tarfile.TarError) as e:
            raise ArchiveError(f"extract archive failed: {e}") from e
