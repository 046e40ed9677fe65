"""
Context Module - Black Box Interface

Purpose: Carry shared state through one deploy invocation
Interface: put(), get(), typed accessors, cancel(), wait_cancelled(), logger
Hidden: Storage layout, type checks

Passed by reference to every stage and to any task a stage spawns.
"""

from .context import ContextKey, ExecutionContext

__all__ = ["ContextKey", "ExecutionContext"]
