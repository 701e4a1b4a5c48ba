"""
Pluggable one-time-code challenge.

`FixedCodeIssuer` accepts a single constant code for every identifier. It is
a test double, not a security mechanism: a real deployment plugs in an issuer
that delivers and verifies a genuine one-time code.
"""

import hmac
import logging
from typing import Protocol

log = logging.getLogger(__name__)


class ChallengeIssuer(Protocol):
    def issue(self, identifier: str) -> None:
        ...

    def verify(self, identifier: str, code: str) -> bool:
        ...


class FixedCodeIssuer:
    def __init__(self, code: str = "123456"):
        self.code = code

    def issue(self, identifier: str) -> None:
        log.info("OTP requested for %s (fixed-code issuer, nothing sent)", identifier)

    def verify(self, identifier: str, code: str) -> bool:
        return hmac.compare_digest(str(code or "").encode("utf-8"), self.code.encode("utf-8"))
