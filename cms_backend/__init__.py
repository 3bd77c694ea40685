"""
Backend package for the community site content API.

This package provides a FastAPI application that serves per-page content
sections stored in the shared ``Home`` table, plus the form email endpoint
used by the site drawers.
"""
