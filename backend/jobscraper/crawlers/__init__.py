"""Crawler implementations for driving the live browser page."""

from .browser import BrowserCrawler, ListMetrics

__all__ = ['BrowserCrawler', 'ListMetrics']
