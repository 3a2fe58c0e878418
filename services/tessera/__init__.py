"""Tessera: enterprise SSO connectors and IdP-initiated SAML sign-in."""

__version__ = "0.1.0"
