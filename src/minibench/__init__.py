"""minibench: Micro-benchmark harness for plain Python functions."""

__version__ = "0.1.0"
