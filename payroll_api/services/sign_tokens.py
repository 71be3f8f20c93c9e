from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Union

from sqlalchemy import update

from payroll_api.common.errors import InvalidToken, ValidationError
from payroll_api.models.resignation import ResignationApplication, ResignationSignToken

log = logging.getLogger(__name__)

SIGNER_ROLES = ("employee", "hr", "manager")
DEFAULT_TTL = timedelta(days=7)


def ensure_role(role: str) -> str:
    role = (role or "").strip().lower()
    if role not in SIGNER_ROLES:
        raise ValidationError(f"signer_type must be one of {', '.join(SIGNER_ROLES)}")
    return role


# ---------- signer authorization ----------

@dataclass(frozen=True)
class TokenAuthorized:
    """Signer presented a single-use link token; the token decides the application."""
    token: str
    role: str


@dataclass(frozen=True)
class DirectAuthorized:
    """Signer named the application and role in the request body."""
    application_uuid: str
    role: str


SignerAuthorization = Union[TokenAuthorized, DirectAuthorized]


@dataclass(frozen=True)
class VerifiedSigner:
    application_id: int
    role: str


class SignatureTokenIssuer:
    """
    Issues and redeems single-use, time-limited signing tokens.

    ``redeem`` does not commit: the caller commits it together with the
    signature it authorizes, so a failed signature write leaves the token unused.
    """

    def __init__(self, session, ttl: timedelta = DEFAULT_TTL,
                 now: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.ttl = ttl
        self.now = now

    def issue(self, application: ResignationApplication, role: str) -> ResignationSignToken:
        role = ensure_role(role)
        now = self.now()
        existing = (self.session.query(ResignationSignToken)
                    .filter(ResignationSignToken.application_id == application.id,
                            ResignationSignToken.signer_type == role,
                            ResignationSignToken.used.is_(False),
                            ResignationSignToken.expires_at > now)
                    .order_by(ResignationSignToken.expires_at.desc())
                    .first())
        if existing is not None:
            return existing

        tok = ResignationSignToken(
            application_id=application.id,
            signer_type=role,
            token=secrets.token_urlsafe(32),
            expires_at=now + self.ttl,
            used=False,
        )
        self.session.add(tok)
        self.session.commit()
        log.info("Issued %s signing token for resignation %s", role, application.uuid)
        return tok

    def redeem(self, token: str, role: str) -> int:
        """
        Mark the token used and return its application id.
        The check and the mark are one conditional UPDATE, so only the first
        of several concurrent redemptions matches a row.
        """
        if not token or not role:
            raise InvalidToken("Invalid or expired signing token")
        now = self.now()
        res = self.session.execute(
            update(ResignationSignToken)
            .where(ResignationSignToken.token == token,
                   ResignationSignToken.signer_type == role,
                   ResignationSignToken.used.is_(False),
                   ResignationSignToken.expires_at > now)
            .values(used=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise InvalidToken("Invalid or expired signing token")
        app_id = (self.session.query(ResignationSignToken.application_id)
                  .filter(ResignationSignToken.token == token)
                  .scalar())
        return app_id
