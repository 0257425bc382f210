from . import (
    automation_log_service,
    cell_service,
)

__all__ = [
    "automation_log_service",
    "cell_service",
]
"""Service-layer helpers for API operations."""
