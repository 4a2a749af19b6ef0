"""Per-site extraction implementations."""

from .linkedin import LinkedInSite

__all__ = ['LinkedInSite']
