import os.path
import re

from setuptools import find_packages, setup

try:
    # Import all script providers so that ENTRYPOINTS gets populated.
    from colimalib.scripts import daemon  # noqa: F401
    from colimalib.scripts.utils import ENTRYPOINTS
except ImportError:
    # Avoid chicken-and-egg dependency requirements during initial installation.
    # This means you need to re-run setup in order to gain script entrypoints.
    ENTRYPOINTS = []


HERE = os.path.abspath(os.path.dirname(__file__))

README = os.path.join(HERE, "README.rst")


def version():
    with open(os.path.join(HERE, "colimalib", "__init__.py")) as init:
        return re.search(r'^__version__ = "(.+)"$', init.read(), re.M).group(1)


setup(name="colimalib",
      version=version(),
      description="Run Colima as a macOS system daemon under a hidden service account.",
      long_description=open(README).read(),
      long_description_content_type="text/x-rst",
      platforms=["MacOS"],
      python_requires=">=3.6",
      install_requires=["docopt", "jinja2"],
      packages=find_packages(exclude=["tests"]),
      package_data={"colimalib": ["templates/*.j2"]},
      entry_points={"console_scripts": ENTRYPOINTS})
