"""
Rendering and installation of launchd unit files.

Units are rendered from Jinja2 templates, and only ever reach their final location once the
rendered file has passed validation -- a failed render or lint leaves any existing unit in place.
"""

import logging
import os
import os.path
import tempfile
from typing import Mapping, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from .common import RenderError, Result, State, ValidationError
from .porcelain import Porcelain


LOG = logging.getLogger(__name__)


def render(template: str, params: Mapping[str, str]) -> str:
    """
    Render a template file, failing if it refers to any parameter not provided.
    """
    env = Environment(loader=FileSystemLoader(os.path.dirname(template)),
                      undefined=StrictUndefined, autoescape=True, keep_trailing_newline=True)
    try:
        return env.get_template(os.path.basename(template)).render(params)
    except TemplateError as ex:
        raise RenderError("Failed to render {!r}: {}".format(template, ex)) from ex


def _read(path: str) -> Optional[bytes]:
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return None


def install(porcelain: Porcelain, template: str, path: str, params: Mapping[str, str],
            owner: Tuple[int, int] = (0, 0), mode: int = 0o644) -> Result[str]:
    """
    Render a unit from its template, validate it, and move it into place.

    The rendered file is staged privately alongside the destination, and renamed over it only if
    valid.  The staging file is removed in all other cases.
    """
    content = render(template, params).encode("utf-8")
    previous = _read(path)
    fd, staged = tempfile.mkstemp(prefix=".{}.".format(os.path.basename(path)), suffix=".tmp",
                                  dir=os.path.dirname(path))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        if not porcelain.lint(staged):
            raise ValidationError("Rendered {!r} is not a valid unit".format(template))
        os.chmod(staged, mode)
        os.chown(staged, *owner)
        os.replace(staged, path)
    finally:
        try:
            os.unlink(staged)
        except FileNotFoundError:
            pass
    if previous is None:
        LOG.info("Installed %r", path)
        state = State.created
    elif previous != content:
        LOG.info("Updated %r", path)
        state = State.success
    else:
        state = State.unchanged
    return Result(state, path)
