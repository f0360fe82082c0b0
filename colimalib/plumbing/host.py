"""
Checks that the current host can be set up, before anything on it is changed.
"""

import logging
import os
import os.path
import platform
import shutil

from ..config import Config
from .common import PrerequisiteError, Result, State
from .porcelain import Porcelain


LOG = logging.getLogger(__name__)


def check_prerequisites(config: Config, porcelain: Porcelain) -> Result[None]:
    """
    Fail on the first unmet requirement: right platform, running as root, Colima installed, all
    unit templates present, and all system tools available.
    """
    system = platform.system()
    if system != porcelain.platform:
        raise PrerequisiteError("Requires {}, running on {}".format(porcelain.platform, system))
    if os.geteuid() != 0:
        raise PrerequisiteError("Must be run as root")
    if not shutil.which(config.binary):
        raise PrerequisiteError("Colima not found at {!r}, please install it first"
                                .format(config.binary))
    for unit in config.units:
        template = config.template_path(unit)
        if not os.path.isfile(template):
            raise PrerequisiteError("Template for {!r} not found at {!r}"
                                    .format(unit.label, template))
    for tool in porcelain.tools:
        if not shutil.which(tool):
            raise PrerequisiteError("Required tool {!r} not found".format(tool))
    LOG.debug("Prerequisites check passed")
    return Result(State.unchanged)
