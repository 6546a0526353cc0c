"""
Parsing Collaborator Interface

The language-model service is an opaque collaborator. The intake pipeline
depends only on this interface so that parsing can be faked in tests and
swapped for another provider.
"""

from abc import ABC, abstractmethod

from finbot.models.intake import ParseRequest, ParserResponse
from finbot.models.transaction import Transaction


class TransactionParserInterface(ABC):
    """Turns raw user input into transaction proposals and/or an answer."""
    
    @abstractmethod
    async def parse(
        self,
        request: ParseRequest,
        history: list[Transaction],
    ) -> ParserResponse:
        """
        Parse one round of user input.
        
        Args:
            request: Text, image and/or audio from the user
            history: Recent confirmed transactions, oldest first
            
        Returns:
            Proposals and/or an answer (either may be absent)
            
        Raises:
            ParserUnavailableError: The service could not be reached
            ParserResponseError: The service answered with no usable output
        """
        pass
    
    @abstractmethod
    async def analyze_spending(self, transactions: list[Transaction]) -> str:
        """Free-text spending advice. Never raises; failures become a fixed message."""
        pass


class ParserError(Exception):
    """Base exception for parsing collaborator errors."""
    pass


class ParserUnavailableError(ParserError):
    """Network, quota or authentication failure."""
    pass


class ParserResponseError(ParserError):
    """The service answered, but not with the expected JSON."""
    pass
