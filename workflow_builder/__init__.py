"""Workflow builder: compose and run directed graphs of typed nodes."""

__version__ = "1.0.0"
