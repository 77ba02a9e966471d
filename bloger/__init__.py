"""
Bloger - AI Article Workshop

Generates AIDA-structured blog articles with a generative AI service, extends
them on demand, and shares them as self-contained links.
"""

__version__ = "0.1.0"
