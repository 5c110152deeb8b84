"""
Death Guild playlist scraping, Spotify enrichment and publishing.
"""

__version__ = "0.1.0"
