"""
Filesystem actions: directories owned by service accounts, and symlinks.
"""

import logging
import os
import stat

from .common import Result, State
from .identity import Group, User


LOG = logging.getLogger(__name__)


def mkdir(path: str, user: User, group: Group, mode: int = 0o750) -> Result[None]:
    """
    Create a directory (and any missing parents) owned by the given user and group.

    Ownership and permissions are applied on every call, whether or not the directory existed.
    """
    state = State.unchanged
    try:
        before = os.stat(path)
    except FileNotFoundError:
        LOG.info("Creating directory %r", path)
        # Only the leaf takes `mode`, parents keep the default.
        os.makedirs(path)
        state = State.created
    else:
        if not stat.S_ISDIR(before.st_mode):
            raise NotADirectoryError("Not a directory: {!r}".format(path))
        if (before.st_uid, before.st_gid) != (user.uid, group.gid):
            state = State.success
        elif stat.S_IMODE(before.st_mode) != mode:
            state = State.success
    os.chmod(path, mode)
    os.chown(path, user.uid, group.gid)
    return Result(state)


def symlink(path: str, target: str) -> Result[None]:
    """
    Point a symlink at the given target, replacing whatever file or link is at its path.
    """
    try:
        current = os.readlink(path)
    except FileNotFoundError:
        state = State.created
    except OSError:
        # Exists, but isn't a link.
        state = State.success
    else:
        state = State.unchanged if current == target else State.success
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    else:
        if state:
            LOG.info("Replacing %r", path)
    os.symlink(target, path)
    return Result(state)
