"""
IPO grey market premium (GMP) static-site pipeline.

Fetches a spreadsheet CSV export of IPO GMP quotes, classifies every row as
active / upcoming / closed from its free-text date range, renders HTML cards
and splices them into a static page. A companion job scrapes third-party GMP
pages and merges them into the source Google Sheet.

CLI Usage:
    python -m gmp_pipeline.main --mode render
    python -m gmp_pipeline.main --mode populate
    python -m gmp_pipeline.main --mode sheets-check
"""

__version__ = "0.1.0"
