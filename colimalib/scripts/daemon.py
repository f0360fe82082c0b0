"""
Scripts to install and inspect the Colima daemon.
"""

from ..config import Config
from ..plumbing.common import StepFailed
from ..plumbing.porcelain import Porcelain
from ..tasks import daemon
from .utils import entrypoint, error


@entrypoint
def setup(conf: Config, porcelain: Porcelain):
    """
    Run Colima as a system daemon, under a hidden service account.

    Usage: {script}

    Safe to re-run: existing accounts are kept, units are re-rendered and reloaded, and the Docker
    socket link is recreated.  Must be run as root.
    """
    try:
        result = daemon.setup(conf, porcelain)
    except StepFailed as ex:
        error("Failed to {}".format(ex), exit=1)
    else:
        print(result)
        print("Colima daemon setup completed")


@entrypoint
def status(conf: Config, porcelain: Porcelain):
    """
    Show the state of each Colima unit, and of the Docker socket link.

    Usage: {script}
    """
    for label, state in daemon.get_status(conf, porcelain).items():
        print("{}: {}".format(label, state.name))
    target = daemon.get_socket_target(conf)
    if target is None:
        error("{}: not linked".format(conf.socket_link))
    elif target != conf.socket_target:
        error("{} -> {} (expected {})".format(conf.socket_link, target, conf.socket_target))
    else:
        print("{} -> {}".format(conf.socket_link, target))
