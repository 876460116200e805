"""Interactive client for the Raindrop SmartBucket API.

The entrypoint is implemented with Typer and Rich; every remote operation is
driven from an interactive menu and performs a single HTTP round-trip.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
