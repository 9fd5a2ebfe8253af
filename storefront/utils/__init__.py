"""Utility modules."""

from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger, setup_logging
from storefront.utils.tracing import OperationTracer

__all__ = ["setup_logging", "get_logger", "OperationTracer", "utcnow"]
