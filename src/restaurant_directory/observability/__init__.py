"""Logging, tracing and metrics for the restaurant directory."""

from restaurant_directory.observability.config import configure_logging, setup_observability
from restaurant_directory.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
