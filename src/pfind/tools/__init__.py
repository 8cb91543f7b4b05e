"""
Traversal tools for pfind.

This module contains the concurrent filesystem walker, the concurrency
primitives it is built on and the per-entry filesystem helpers.
"""
