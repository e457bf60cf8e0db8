"""
tcp-client: send action scripts to a length-prefixed text server.
"""

__version__ = "0.1.0"
