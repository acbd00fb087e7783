"""
Meal count submission and approval service.
"""

__version__ = "1.0.0"
