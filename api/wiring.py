"""
api/wiring.py -- Explicit composition of Keeper's services at process start.

No service locator and no DI framework: build_services() constructs every
component in dependency order and passes references by hand.

  PasswordHasher  (bcrypt rounds from Settings)
    -> AccountStore  (needs the hasher and the credential policy)
  SigningKey      (secret + algorithm from Settings, immutable)
    -> TokenIssuer, TokenVerifier  (share the one key)
       -> AccessGuard  (needs the verifier)
  ItemStore       (independent)

api/main.py's lifespan calls build_services() and attach(); tests call them
with their own Settings, database URL and clock.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from fastapi import FastAPI

from auth.guard import AccessGuard
from auth.passwords import PasswordHasher
from auth.store import AccountStore
from auth.tokens import Clock, SigningKey, TokenIssuer, TokenVerifier
from core.config import Settings
from core.validation import CredentialPolicy
from items.store import ItemStore


@dataclass
class Services:
    accounts: AccountStore
    items: ItemStore
    issuer: TokenIssuer
    verifier: TokenVerifier
    guard: AccessGuard

    def close(self) -> None:
        self.accounts.close()
        self.items.close()


def build_services(settings: Settings, clock: Clock = time.time) -> Services:
    """Construct every service from one Settings instance.

    A bad signing key raises ValueError here, at startup, never per request.
    """
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    accounts = AccountStore(settings.database_url, hasher, CredentialPolicy.from_settings(settings))
    key = SigningKey(secret=settings.secret_key, algorithm=settings.jwt_algorithm)
    issuer = TokenIssuer(key, ttl_seconds=settings.token_expire_seconds, clock=clock)
    verifier = TokenVerifier(key, clock=clock)
    return Services(
        accounts=accounts,
        items=ItemStore(settings.database_url),
        issuer=issuer,
        verifier=verifier,
        guard=AccessGuard(verifier),
    )


def attach(app: FastAPI, services: Services) -> None:
    """Expose services on app.state, where routes and auth dependencies look them up."""
    app.state.services = services
    app.state.accounts = services.accounts
    app.state.items = services.items
    app.state.issuer = services.issuer
    app.state.guard = services.guard
