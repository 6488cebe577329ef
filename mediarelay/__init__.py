"""
MediaRelay: image and video hosting relay with an on-the-fly transform proxy.
"""

__version__ = "1.0.0"
