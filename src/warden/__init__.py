"""
Warden - Discord Moderation Case Engine

Warden gives trusted staff a consistent set of moderation commands and keeps a
durable record of what was done and why.

Core Components:

- **Permissions**: Four static staff tiers (trial moderator, moderator,
  administrator, owner) resolved from configured role ids
- **Target validation**: Self, bot and role-hierarchy checks shared by every
  disciplinary command
- **Sanitization**: Separate storage, display and logging contracts for all
  free text supplied by moderators
- **Case store**: Guild-scoped notes, warnings and mutes persisted in SQLite
- **Orchestrator**: One fixed pipeline per command that ends in a reply and an
  audit log entry, never in a crash

Usage:
    from warden.main import main
    main()  # Starts the bot
"""
