"""
Momentum
========

Project, task and note management backend with AI planning assistance.
"""

__version__ = "0.1.0"
