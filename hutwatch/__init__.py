"""
hutwatch - mountain hut availability scraper.

Runs batches of scrape targets through pluggable provider adapters and
collects the outcomes into a single report.
"""

__version__ = "0.1.0"
__app_name__ = "hutwatch"
