"""
Hallucination Guard

Multi-layer hallucination prevention for retrieval-augmented answers.
"""

__version__ = "0.1.0"
