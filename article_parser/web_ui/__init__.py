"""
JSON API for article-parser (requires the ``web`` extra).
"""
