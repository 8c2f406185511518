"""Core module for the DI container."""

from wingman.core.container import Container, build_container

__all__ = ["Container", "build_container"]
