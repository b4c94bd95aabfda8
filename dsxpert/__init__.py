"""DSXpert Backend - data-structure optimization with diff review"""

__version__ = "1.0.5"
