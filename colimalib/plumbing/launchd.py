"""
launchd service lifecycle.

launchd doesn't watch installed plists for changes, so an updated unit only takes effect once the
running copy is booted out and the file bootstrapped again -- see `reload`.
"""

from enum import Enum
import logging
import os.path
from subprocess import CalledProcessError

from .common import LifecycleError, Result, State
from .porcelain import Porcelain


LOG = logging.getLogger(__name__)


class ServiceState(Enum):
    """
    Observed state of a unit, derived from launchd and the filesystem.
    """

    absent = 0
    """
    No plist installed, and not known to launchd.
    """
    installed = 1
    """
    Plist installed, but not loaded.
    """
    loaded = 2
    """
    Known to launchd.
    """


def get_state(porcelain: Porcelain, label: str, path: str) -> ServiceState:
    if porcelain.is_loaded(label):
        return ServiceState.loaded
    elif os.path.exists(path):
        return ServiceState.installed
    else:
        return ServiceState.absent


def unload(porcelain: Porcelain, label: str) -> Result[None]:
    """
    Boot out a running unit.  A unit that isn't loaded is left as-is, and any other failure is
    logged rather than raised, as the unit is about to be loaded again anyway.
    """
    try:
        stopped = porcelain.bootout(label)
    except CalledProcessError as ex:
        LOG.warning("Ignoring failure to unload %r: %s", label, ex)
        return Result(State.unchanged)
    if not stopped:
        LOG.debug("Unit %r not loaded", label)
        return Result(State.unchanged)
    LOG.info("Unloaded %r", label)
    return Result(State.success)


def load(porcelain: Porcelain, label: str, path: str) -> Result[None]:
    """
    Bootstrap a unit from its installed plist, and check that launchd now knows about it.
    """
    try:
        porcelain.bootstrap(path)
    except CalledProcessError as ex:
        # launchctl's exit codes aren't reliable here; the check below decides.
        LOG.warning("Bootstrap of %r reported failure: %s", path, ex)
    if not porcelain.is_loaded(label):
        raise LifecycleError("Failed to load {!r} from {!r}".format(label, path))
    LOG.info("Loaded %r", label)
    return Result(State.success)


@Result.collect
def reload(porcelain: Porcelain, label: str, path: str):
    """
    Unload then load a unit, to pick up changes to its plist.
    """
    yield unload(porcelain, label)
    yield load(porcelain, label, path)
