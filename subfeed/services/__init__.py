"""Scraping, reconciliation and notification services."""
