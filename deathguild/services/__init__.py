"""Pipeline services: scraping, storage, enrichment and publishing."""
