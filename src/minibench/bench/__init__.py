"""Benchmarking subsystem for minibench.

Discovers ``*bench.py`` modules, times their ``bench*`` functions (or
ranks the candidates returned by ``compare*`` functions), and renders
the aggregated latencies.
"""
