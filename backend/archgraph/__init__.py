"""
archgraph: consistency engine and service for LLM-built, hierarchical
architecture diagrams.
"""

__version__ = "0.1.0"
