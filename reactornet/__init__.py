"""Multi-reactor TCP networking: event loops, timers, buffers, TCP client and server."""

__version__ = "0.1.0"