"""
Moderation core.

- **permissions.py**: Static staff tiers and the pure tier resolver.
- **target_validation.py**: Self, bot and role hierarchy checks.
- **errors.py**: Error taxonomy and translation of store failures.
- **platform.py**: Platform interface plus the py-cord implementation.
- **audit.py**: Audit events and the audit channel emitter.
- **orchestrator.py**: The per-command action pipelines.
"""
