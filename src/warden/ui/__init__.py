"""
Presentation helpers.

- **audit_embed.py**: Builds the audit channel embed for a moderation event.
- **case_pages.py**: Splits case listings into fixed-size embed pages for the
  paginated note and warning views.
"""
