"""Async plumbing shared by the push, watch and MCP code paths."""

from .async_utils import gather_settled, init_semaphore, run_sync

__all__ = ["gather_settled", "init_semaphore", "run_sync"]
