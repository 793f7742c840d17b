"""Identifier primitives shared across bounded contexts."""

from shared_kernel.identifiers.sanitize import sanitize

__all__ = ["sanitize"]
