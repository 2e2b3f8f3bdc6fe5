"""Utility helpers."""

from .ranges import frame_list, parse_range, parse_range_list

__all__ = ["frame_list", "parse_range", "parse_range_list"]
