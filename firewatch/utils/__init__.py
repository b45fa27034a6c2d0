"""
Utility functions for console reporting.
"""

from .summary import print_enrichment, print_operations, print_summary_statistics

__all__ = ["print_enrichment", "print_operations", "print_summary_statistics"]
