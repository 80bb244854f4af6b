"""
Procurement Agent - conversational supplier search, RFQs and ordering.
"""

__version__ = "0.1.0"
