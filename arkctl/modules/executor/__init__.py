"""
Executor Module - Black Box Interface

Purpose: Run external commands (mvn, kubectl) with live output
Interface: Command.start(), Command.output(), Command.wait(), run_to_completion()
Hidden: asyncio subprocess plumbing, output buffering, kill escalation

Cancellation of the execution context kills the running child and still
fires the completion signal.
"""

from .command import Command, run_to_completion

__all__ = ["Command", "run_to_completion"]
