"""core/ -- Kernel: configuration, typed errors and the database gateway.

Layer rule: core/ imports from the standard library and third-party
libraries only. Every other package may import from core/.
"""
