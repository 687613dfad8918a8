"""Declarative build orchestration for multi-file LaTeX documents."""

__version__ = "0.1.0"
