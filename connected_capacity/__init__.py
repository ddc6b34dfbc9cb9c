"""
Connected Capacity Bundle Engine

Assessment ingestion, CA decision-tree and CAP evaluation, care bundle
scenario generation and staff assignment scoring.
"""

__version__ = "2.2.0"
