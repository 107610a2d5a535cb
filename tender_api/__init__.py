"""Tender Writer HTTP service."""
