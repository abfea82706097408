"""
Bill Splitter

Split a shared bill between friends: line items are read off a photo,
each person is given a share of each item, and tax/tip is divided in
proportion to what everyone spent.
"""

from bill_splitter.session import BillSession

__version__ = "1.0.0"

__all__ = ["BillSession", "__version__"]
