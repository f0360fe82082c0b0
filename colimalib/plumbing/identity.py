"""
Service account management through the host's directory service.

Accounts are only ever created: an existing user or group is reported back as-is, and never
modified or removed.
"""

import logging
from subprocess import CalledProcessError
from typing import NamedTuple, Optional

from .common import IdentityError, Result, State
from .porcelain import GROUPS, ID_ATTRS, Porcelain, Record, USERS


LOG = logging.getLogger(__name__)


class Group(NamedTuple):
    name: str
    gid: int


class User(NamedTuple):
    name: str
    uid: int
    gid: int
    home: str
    shell: str


def _attr(record: Record, key: str, default: str = "") -> str:
    values = record.get(key)
    return values[0] if values else default


def _id(record: Record, key: str) -> Optional[int]:
    try:
        return int(_attr(record, key))
    except ValueError:
        return None


def _incomplete(kind: str, name: str) -> None:
    # A failed creation can leave a record behind without its attributes.
    LOG.warning("Record /%s/%s is incomplete, treating it as missing", kind, name)


def get_group(porcelain: Porcelain, name: str) -> Optional[Group]:
    """
    Look up an existing group by name.  A record without a numeric GID counts as missing.
    """
    record = porcelain.read_record(GROUPS, name)
    if record is None:
        return None
    gid = _id(record, ID_ATTRS[GROUPS])
    if gid is None:
        _incomplete(GROUPS, name)
        return None
    return Group(name, gid)


def get_user(porcelain: Porcelain, name: str) -> Optional[User]:
    """
    Look up an existing user by name.  A record without a numeric UID and GID counts as missing.
    """
    record = porcelain.read_record(USERS, name)
    if record is None:
        return None
    uid = _id(record, ID_ATTRS[USERS])
    gid = _id(record, "PrimaryGroupID")
    if uid is None or gid is None:
        _incomplete(USERS, name)
        return None
    return User(name, uid, gid, _attr(record, "NFSHomeDirectory"), _attr(record, "UserShell"))


def get_next_id(porcelain: Porcelain, kind: str) -> int:
    """
    Pick an identifier for a new user or group, one above the highest currently in use.
    """
    return max(porcelain.list_ids(kind), default=0) + 1


def _create(porcelain: Porcelain, kind: str, name: str, attrs: dict) -> int:
    new_id = get_next_id(porcelain, kind)
    attrs = dict(attrs, **{ID_ATTRS[kind]: str(new_id)})
    LOG.info("Creating /%s/%s with ID %d", kind, name, new_id)
    try:
        porcelain.create_record(kind, name, attrs)
    except CalledProcessError as ex:
        raise IdentityError("Failed to create /{}/{}: {}".format(kind, name, ex)) from ex
    # Allocation isn't atomic: check we didn't race another creation to the same ID.
    record = porcelain.read_record(kind, name)
    if record is None or _attr(record, ID_ATTRS[kind]) != str(new_id):
        raise IdentityError("/{}/{} was not created with ID {}".format(kind, name, new_id))
    if porcelain.list_ids(kind).count(new_id) > 1:
        raise IdentityError("ID {} for /{}/{} is already in use".format(new_id, kind, name))
    return new_id


def ensure_group(porcelain: Porcelain, name: str) -> Result[Group]:
    """
    Create a new or retrieve an existing group.
    """
    group = get_group(porcelain, name)
    if group:
        return Result(State.unchanged, group)
    gid = _create(porcelain, GROUPS, name, {})
    return Result(State.created, Group(name, gid))


def ensure_user(porcelain: Porcelain, name: str, group: Group, home: str,
                shell: str = "/usr/bin/false") -> Result[User]:
    """
    Create a new hidden, non-interactive user, or retrieve an existing one.

    An existing user is left alone even if its attributes differ from those requested, though any
    differences are logged.
    """
    user = get_user(porcelain, name)
    if user:
        if user.gid != group.gid:
            LOG.warning("User %r has primary GID %d, expected %d", name, user.gid, group.gid)
        if user.home != home:
            LOG.warning("User %r has home %r, expected %r", name, user.home, home)
        if user.shell != shell:
            LOG.warning("User %r has shell %r, expected %r", name, user.shell, shell)
        return Result(State.unchanged, user)
    uid = _create(porcelain, USERS, name, {"UserShell": shell,
                                           "PrimaryGroupID": str(group.gid),
                                           "NFSHomeDirectory": home,
                                           "IsHidden": "1"})
    return Result(State.created, User(name, uid, group.gid, home, shell))
