"""
UI Module

Browser front end for the iterative ideation workflow.

This module provides:
- Pure view models (stat cards, top performer cards, manifest, report text)
- A Streamlit app driving one workflow per browser session

Launch with ``nexus ui`` or ``streamlit run ui/app.py``.
"""

__version__ = "0.1.0"
