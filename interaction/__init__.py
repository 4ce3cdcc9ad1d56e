"""
Dyadic interaction client.

Client side of a turn-taking director/matcher communication game. A remote
coordinator pairs participants and pushes instructions; this package keeps
the local trial timeline in step with them.
"""

__version__ = "0.1.0"
