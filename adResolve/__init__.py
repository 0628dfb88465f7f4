"""adResolve: map IP addresses to Active Directory computer records."""

__version__ = "0.1.0"
