"""
Cross-compilation targets: CPUs, triples and Linux distributions.
"""
