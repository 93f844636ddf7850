"""Cogs registered on the Warden bot."""
