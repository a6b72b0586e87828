"""
Authentication Module for Shelfkeeper

- AuthorizationGate: bearer credential -> principal id
- LockoutPolicy: failed-login counting and temporary locks
- AuthService: registration and login
"""

from shelfkeeper.auth.gate import AuthorizationGate
from shelfkeeper.auth.lockout import LockoutPolicy
from shelfkeeper.auth.service import AuthService, IssuedToken

__all__ = [
    "AuthorizationGate",
    "LockoutPolicy",
    "AuthService",
    "IssuedToken",
]
