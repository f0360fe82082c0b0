"""
Narrow interface to the host's system utilities.

Plumbing never shells out to the directory service, init system or unit validator directly; it
goes through a `Porcelain` object instead, so that each action can be exercised against an
in-memory stand-in.  `DarwinPorcelain` is the real implementation, driving `dscl`, `launchctl`
and `plutil`.
"""

from abc import ABC, abstractmethod
import logging
from subprocess import CalledProcessError
from typing import Dict, List, Mapping, Optional, Tuple

from .common import command


LOG = logging.getLogger(__name__)

Record = Dict[str, List[str]]
"""
Directory service record: attribute names mapped to their (possibly multiple) values.
"""

USERS = "Users"
GROUPS = "Groups"

ID_ATTRS = {USERS: "UniqueID", GROUPS: "PrimaryGroupID"}
"""
Attribute holding the numeric identifier of each record kind.
"""


class Porcelain(ABC):
    """
    Directory service, init system and unit validator of a single host.
    """

    platform: str
    """
    Value of `platform.system()` on hosts this porcelain supports.
    """
    tools: Tuple[str, ...] = ()
    """
    External commands that must be resolvable before any of the methods are usable.
    """

    @abstractmethod
    def read_record(self, kind: str, name: str) -> Optional[Record]:
        """
        Look up a user or group by name, or return `None` if no such record exists.
        """

    @abstractmethod
    def list_ids(self, kind: str) -> List[int]:
        """
        Collect the numeric identifiers of all records of the given kind.
        """

    @abstractmethod
    def create_record(self, kind: str, name: str, attrs: Mapping[str, str]) -> None:
        """
        Create a new user or group record with the given attributes.
        """

    @abstractmethod
    def is_loaded(self, label: str) -> bool:
        """
        Test if the init system currently knows about a unit.
        """

    @abstractmethod
    def bootstrap(self, path: str) -> None:
        """
        Ask the init system to load a unit from its installed file.
        """

    @abstractmethod
    def bootout(self, label: str) -> bool:
        """
        Ask the init system to tear down a unit.  Returns `False` if it wasn't loaded to begin with.
        """

    @abstractmethod
    def lint(self, path: str) -> bool:
        """
        Check that a rendered unit file is well-formed.
        """


def parse_record(text: str) -> Record:
    """
    Parse the output of `dscl -read`, where long values are wrapped onto following lines:

        >>> parse_record("PrimaryGroupID: 20\\nRealName:\\n Colima\\n")
        {'PrimaryGroupID': ['20'], 'RealName': ['Colima']}
    """
    record: Record = {}
    key = None
    for line in text.splitlines():
        if not line.strip():
            continue
        if line.startswith(" ") and key:
            record[key].extend(line.split())
            continue
        key, _, rest = line.partition(":")
        record[key] = rest.split()
    return record


def parse_ids(text: str) -> List[int]:
    """
    Parse the output of `dscl -list <kind> <attr>`, a table of names and values.
    """
    ids = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 2:
            continue
        try:
            ids.append(int(fields[-1]))
        except ValueError:
            LOG.debug("Ignoring non-numeric identifier: %r", line)
    return ids


class DarwinPorcelain(Porcelain):
    """
    macOS host, managed with Directory Services and launchd.
    """

    platform = "Darwin"
    tools = ("dscl", "launchctl", "plutil")

    DOMAIN = "system"
    """
    launchd domain for daemons running outside of any login session.
    """
    NOT_LOADED = (3, 113)
    """
    `launchctl bootout` exit codes for "no such process" and "could not find service".
    """

    def __init__(self, node: str = "."):
        self.node = node

    def _path(self, kind: str, name: Optional[str] = None) -> str:
        return "/{}/{}".format(kind, name) if name else "/{}".format(kind)

    def read_record(self, kind: str, name: str) -> Optional[Record]:
        try:
            proc = command(["dscl", self.node, "-read", self._path(kind, name)],
                           output=True, quiet=True)
        except CalledProcessError:
            return None
        return parse_record(proc.stdout.decode("utf-8"))

    def list_ids(self, kind: str) -> List[int]:
        proc = command(["dscl", self.node, "-list", self._path(kind), ID_ATTRS[kind]], output=True)
        return parse_ids(proc.stdout.decode("utf-8"))

    def create_record(self, kind: str, name: str, attrs: Mapping[str, str]) -> None:
        path = self._path(kind, name)
        command(["dscl", self.node, "-create", path])
        for key, value in attrs.items():
            command(["dscl", self.node, "-create", path, key, value])

    def is_loaded(self, label: str) -> bool:
        try:
            command(["launchctl", "print", "{}/{}".format(self.DOMAIN, label)],
                    output=True, quiet=True)
        except CalledProcessError:
            return False
        return True

    def bootstrap(self, path: str) -> None:
        command(["launchctl", "bootstrap", self.DOMAIN, path])

    def bootout(self, label: str) -> bool:
        try:
            command(["launchctl", "bootout", "{}/{}".format(self.DOMAIN, label)], quiet=True)
        except CalledProcessError as ex:
            if ex.returncode in self.NOT_LOADED:
                return False
            raise
        return True

    def lint(self, path: str) -> bool:
        try:
            command(["plutil", "-lint", path], output=True, quiet=True)
        except CalledProcessError:
            return False
        return True
