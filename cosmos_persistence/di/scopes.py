"""
Service lifetimes.
"""

from enum import Enum


class Scope(Enum):
    """
    How long a resolved service lives.

    SINGLETON: built on first resolve and shared for the container's
               lifetime (client provider, handlers, options).
    TRANSIENT: built again on every resolve.
    """

    SINGLETON = "singleton"
    TRANSIENT = "transient"
