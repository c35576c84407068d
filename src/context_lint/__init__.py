"""Whole-workspace lint for double error context in Rust code."""

__version__ = "0.1.0"
