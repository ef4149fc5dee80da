"""
StoryCraft: a proposal drafting assistant.

Guided conversations are mined for personas, context, goals, constraints and
assumptions, which are then turned into user stories and epics.
"""

__version__ = "1.0.0"
