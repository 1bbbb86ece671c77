"""
SybilScope: behavioral clustering of prediction-market wallets.
"""

__version__ = "0.1.0"
