"""
Meeting Notes service: meeting sessions, AI-generated notes and Zoom OAuth.
"""

__version__ = "1.0.0"
