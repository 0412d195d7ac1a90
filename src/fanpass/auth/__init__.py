"""Authorization token signing."""

from fanpass.auth.token import JwtTokenIssuer

__all__ = ["JwtTokenIssuer"]
