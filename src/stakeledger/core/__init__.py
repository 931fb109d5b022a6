"""
Core domain models, mathematical primitives, errors and settings.

This package contains the foundational building blocks that are independent
of the execution environment (storage, transport, consensus).
"""
