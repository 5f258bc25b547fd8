"""
Storage layer for cc-guard.

Discovers Claude Code session logs and tails them into a deduplicated,
in-memory entry set. Nothing is persisted beyond the source log files.
"""
