"""
Configuration management for Warden.

- **app_configuration.py**: YAML configuration loader for global settings with
  environment variable overrides for secrets and Discord ids. Builds the
  immutable ``ModerationSettings`` handed to the moderation orchestrator.
"""
