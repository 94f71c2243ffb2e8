"""Resolution of working, log and lock file locations."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum

PATH_MAX = 4096


class DirType(IntEnum):
    """Kinds of directory a file name can be placed in."""

    WORKDIR = 1
    LOGDIR = 2
    EXECDIR = 3
    LOCKDIR = 4


@dataclass(frozen=True)
class Directories:
    """Configured directories and the environment variables overriding them."""

    workdir: str
    logdir: str
    lockdir: str
    workdir_env: str | None = None
    logdir_env: str | None = None


def get_path(
    dirtype: DirType,
    filename: str,
    directories: Directories,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Return ``filename`` placed in the directory of the given kind.

    The work and log directories may be overridden from the environment;
    the lock directory may not. Unknown kinds and empty directories leave
    the file name unchanged.
    """
    if environ is None:
        environ = os.environ

    if dirtype == DirType.WORKDIR:
        directory, env = directories.workdir, directories.workdir_env
    elif dirtype == DirType.LOGDIR:
        directory, env = directories.logdir, directories.logdir_env
    elif dirtype == DirType.LOCKDIR:
        directory, env = directories.lockdir, None
    else:
        return filename

    if env is not None and env in environ:
        directory = environ[env]

    if not directory:
        return filename

    return f"{directory}/{filename}"[: PATH_MAX - 2]