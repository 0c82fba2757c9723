"""Power subsystem diagnostic report with brownout snapshot decoding."""

__version__ = "0.1.0"
