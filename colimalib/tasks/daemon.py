"""
Installation of Colima as a launchd system daemon.
"""

from contextlib import contextmanager
import logging
import os
from subprocess import CalledProcessError
from typing import Dict, Iterator, Optional

from ..config import Config, Unit
from ..plumbing import host, identity, launchd, units, unix
from ..plumbing.common import Collect, Result, SetupError, StepFailed
from ..plumbing.launchd import ServiceState
from ..plumbing.porcelain import Porcelain


LOG = logging.getLogger(__name__)


@contextmanager
def step(name: str) -> Iterator[None]:
    """
    Label a stage of setup, so that any failure inside it is reported as a `StepFailed`.
    """
    LOG.debug("Step: %s", name)
    try:
        yield
    except StepFailed:
        raise
    except (SetupError, OSError, CalledProcessError) as ex:
        raise StepFailed(name, ex) from ex


@Result.collect_value
def setup_unit(config: Config, porcelain: Porcelain, unit: Unit) -> Collect[str]:
    """
    Install a unit's plist, then reload it so launchd runs the current version.  The result's value
    is the installed path.
    """
    res_plist = yield from units.install(porcelain, config.template_path(unit),
                                         config.plist_path(unit), config.params(unit),
                                         config.unit_owner, config.unit_mode)
    path = res_plist.value
    yield launchd.reload(porcelain, unit.label, path)
    return path


@Result.collect
def setup(config: Config, porcelain: Porcelain) -> Collect[None]:
    """
    Provision the service account and its home, install and load each unit, then expose the
    Docker socket.  Steps run in this order, and the first failure stops the run.

    Every step is idempotent, so after a failure the fix is to address the cause and run again.  A
    unit that fails to load stays installed but unloaded until then.
    """
    with step("check prerequisites"):
        yield host.check_prerequisites(config, porcelain)
    with step("create group {}".format(config.group)):
        res_group = yield from identity.ensure_group(porcelain, config.group)
        group = res_group.value
    with step("create user {}".format(config.user)):
        res_user = yield from identity.ensure_user(porcelain, config.user, group, config.home,
                                                   config.shell)
        user = res_user.value
    with step("set up directory {}".format(config.home)):
        yield unix.mkdir(config.home, user, group, config.home_mode)
    for unit in config.units:
        with step("set up unit {}".format(unit.label)):
            res_unit = yield from setup_unit(config, porcelain, unit)
            LOG.info("Unit %r loaded from %r", unit.label, res_unit.value)
    with step("link socket {}".format(config.socket_link)):
        yield unix.symlink(config.socket_link, config.socket_target)


def get_status(config: Config, porcelain: Porcelain) -> Dict[str, ServiceState]:
    """
    Report the state of each configured unit, by label.
    """
    return {unit.label: launchd.get_state(porcelain, unit.label, config.plist_path(unit))
            for unit in config.units}


def get_socket_target(config: Config) -> Optional[str]:
    """
    Read where the socket link currently points, or `None` if it's not a symlink.
    """
    try:
        return os.readlink(config.socket_link)
    except OSError:
        return None
