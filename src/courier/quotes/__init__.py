"""
Swap quote services.
"""

from courier.quotes.interface import Quote, QuoteService, QuoteServiceError
from courier.quotes.jupiter import JupiterQuoteService

__all__ = [
    "JupiterQuoteService",
    "Quote",
    "QuoteService",
    "QuoteServiceError",
]
