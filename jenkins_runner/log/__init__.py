from .logger_setup import setup_logger
from .sensitive import SensitiveLogFilter, sensitive_log_filter
from .sink import LogSink

__all__ = ["setup_logger", "SensitiveLogFilter", "sensitive_log_filter", "LogSink"]
