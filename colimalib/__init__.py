"""
Setup of Colima as a headless macOS system daemon, running under a hidden service account.
"""

__version__ = "1.0.0"
