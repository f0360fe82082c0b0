"""
Fixed parameters of the Colima daemon installation.

The whole installation is described by a single immutable `Config`, built once (`DEFAULT`) and
passed explicitly to every task and plumbing call that needs it.  Tests derive variants with
`Config._replace`.
"""

import os.path
from typing import Dict, NamedTuple, Tuple


TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")


class Unit(NamedTuple):
    """
    launchd unit managed by the installation.
    """

    label: str
    """
    launchd label, also used as the file name of the installed plist.
    """
    template: str
    """
    File name of the Jinja2 template inside the config's template directory.
    """
    log_name: str
    """
    Base name of the stdout/stderr log files inside the home directory.
    """


DAEMON = Unit("colima.daemon", "colima.daemon.plist.j2", "daemon")

PERMISSIONS = Unit("colima.socket.permissions", "colima.socket.permissions.plist.j2",
                   "permissions")


class Config(NamedTuple):

    user: str = "colima"
    group: str = "docker"
    home: str = "/var/lib/colima"
    home_mode: int = 0o750
    shell: str = "/usr/bin/false"
    binary: str = "/opt/homebrew/bin/colima"
    profile: str = "default"
    launchd_dir: str = "/Library/LaunchDaemons"
    template_dir: str = TEMPLATE_DIR
    unit_owner: Tuple[int, int] = (0, 0)
    """
    UID and GID owning installed plists (root:wheel).
    """
    unit_mode: int = 0o644
    socket_link: str = "/var/run/docker.sock"
    units: Tuple[Unit, ...] = (DAEMON, PERMISSIONS)

    @property
    def socket_target(self) -> str:
        """
        Live Docker socket exposed by the Colima VM.
        """
        return os.path.join(self.home, ".colima", self.profile, "docker.sock")

    def plist_path(self, unit: Unit) -> str:
        return os.path.join(self.launchd_dir, "{}.plist".format(unit.label))

    def template_path(self, unit: Unit) -> str:
        return os.path.join(self.template_dir, unit.template)

    def log_paths(self, unit: Unit) -> Tuple[str, str]:
        return (os.path.join(self.home, "{}.log".format(unit.log_name)),
                os.path.join(self.home, "{}.err".format(unit.log_name)))

    def params(self, unit: Unit) -> Dict[str, str]:
        """
        Named values substituted into a unit's template.
        """
        log_out, log_err = self.log_paths(unit)
        return {"label": unit.label,
                "user": self.user,
                "group": self.group,
                "home": self.home,
                "binary": self.binary,
                "binary_dir": os.path.dirname(self.binary),
                "profile": self.profile,
                "log_out": log_out,
                "log_err": log_err,
                "socket": self.socket_target,
                "socket_dir": os.path.dirname(self.socket_target),
                "socket_link": self.socket_link}


DEFAULT = Config()
