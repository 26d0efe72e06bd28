"""
Task Tamer -- turns a free-form task description into a trackable checklist.
"""

__version__ = "0.1.0"
