"""HTTP surface over the swap engine.

Exposes the engine's user operations (request input, pinning, auto
refresh, swap execution) and its observable state as JSON.
"""

from swaprace.web.app import create_app

__all__ = ["create_app"]
