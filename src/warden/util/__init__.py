"""
Utility helpers for Warden.

- **logger.py**: Centralized logging configuration with coloured console output
  through prompt_toolkit, a per-session rotating log file, and suppression of
  chatty library loggers.

- **sanitizer.py**: The text sanitization contracts used before storing,
  displaying and logging moderator supplied text, plus display-name and
  numeric id validation helpers.
"""
