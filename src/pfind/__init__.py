"""
pfind - Core Package

A concurrent directory-tree search tool that streams entries whose names
contain a search string as soon as they are found.
"""

__version__ = "0.1.0"
__author__ = "pfind Team"
