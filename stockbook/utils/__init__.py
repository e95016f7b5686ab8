"""
Utility modules for the stock order book.

This module provides logging and performance monitoring helpers.
"""

from .logger import setup_logging, get_logger, create_audit_logger, log_order_audit, log_trade_audit
from .performance import PerformanceMonitor, LatencyTracker, measure_latency, get_performance_monitor

__all__ = [
    "setup_logging",
    "get_logger",
    "create_audit_logger",
    "log_order_audit",
    "log_trade_audit",
    "PerformanceMonitor",
    "LatencyTracker",
    "measure_latency",
    "get_performance_monitor",
]
