"""
UBL Converter API
Converts business documents into signed UBL 2.1 XML for SUNAT electronic invoicing.
"""

__version__ = "1.0.0"
