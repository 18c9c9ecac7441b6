"""checkhub — on-demand health checks with execution history."""

__version__ = "0.1.0"
