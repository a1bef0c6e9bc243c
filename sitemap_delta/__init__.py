"""
Sitemap Delta - Source Package

Modules:
- config: Configuration loading and validation
- sitemap_fetcher: HTTP fetching with bounded retry and linear backoff
- sitemap_parser: XML / plain-text parsing for sitemap indexes and urlsets
- robots: Sitemap declarations from robots.txt
- resolver: Sitemap discovery and flattening for a site root
- differ: New URLs between two snapshots
- storage: Snapshot persistence (CSV)
- crawler: Single-site and batch crawl orchestration
- main: Command line entry point
"""

__version__ = "1.0.0"
