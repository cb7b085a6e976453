"""
Production module.

Production runs: raw material consumed, finished goods produced.
"""

from . import models  # noqa: F401
