"""
LMS API: accounts, password recovery and course catalog with hosted media.
"""

__version__ = "1.0.0"
