"""Configuration loading for cc-guard."""
