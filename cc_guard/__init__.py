"""
cc-guard: real-time cost guard for Claude Code.

Tails Claude Code session logs, groups usage into 5-hour billing blocks and
tracks burn rate against a per-block budget.
"""

__version__ = "0.2.0"
