"""
API tier of the three-tier data service.
Serves the records of one MySQL table to the client over HTTP.
"""
__version__ = "0.1.0"
