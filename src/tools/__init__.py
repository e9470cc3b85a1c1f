# src/tools/__init__.py
"""
Listing diagnostic tools package

Provider-facing tools, one subpackage per external dependency:
  - scraping  (listing retrieval: HTTP scrape API, mock)
  - analysis  (generative diagnostic: OpenAI, mock)

Import from the subpackages directly, e.g. `from src.tools.scraping import fetch_listing`.
"""
