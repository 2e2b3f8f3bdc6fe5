"""Atom groups and periodic boxes."""

from .atoms import AtomGroup
from .box import Box

__all__ = ["AtomGroup", "Box"]
