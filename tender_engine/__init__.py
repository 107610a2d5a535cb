"""
Tender generation pipeline.

Context assembly, staged content generation, work package workflow gating
and export rendering for tender-response documents.
"""

__version__ = "1.0.0"
