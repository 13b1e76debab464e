"""
BugBoard Desktop Client
=======================

Desktop client for the BugBoard issue tracker. The ``core`` package holds the
session, entity store and synchronization controllers; ``utils`` holds the
logging, configuration and threading helpers; ``ui`` is the customtkinter
shell that hosts everything on the Tk main loop.
"""

__version__ = "1.0.0"
