"""
Passgate Tokens
===============
Signed access/refresh token pairs with rotation and revocation.
"""

from .models import TokenClaims, TokenIdentity, TokenPair, TokenType
from .revocation import InMemoryRevocationRegistry, RedisRevocationRegistry, RevocationRegistry
from .service import RESERVED_CLAIMS, TokenService, generate_token_id

__all__ = [
    "TokenType",
    "TokenIdentity",
    "TokenClaims",
    "TokenPair",
    "RevocationRegistry",
    "InMemoryRevocationRegistry",
    "RedisRevocationRegistry",
    "TokenService",
    "RESERVED_CLAIMS",
    "generate_token_id",
]
