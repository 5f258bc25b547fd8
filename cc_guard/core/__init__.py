"""
Core modules for cc-guard.

This package contains log parsing, pricing, billing block segmentation,
burn rate analysis, aggregation and budget alerts.
"""
