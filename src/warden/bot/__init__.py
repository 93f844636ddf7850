"""
Discord-facing layer of Warden.

Hosts the py-cord cogs that translate slash commands into moderation requests.
"""
