"""Core: domain models, grammar, dispatch and configuration."""
