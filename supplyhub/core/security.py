from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from supplyhub.db.session import get_db
from supplyhub.db.models.company import Company, CompanyType, CompanyUser

bearer = HTTPBearer(auto_error=False)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALG = os.getenv("JWT_ALG", "HS256")
JWT_TTL_MIN = int(os.getenv("JWT_TTL_MIN", "30"))  # 30m default

IAM_ISSUER = os.getenv("IAM_ISSUER", "supplyhub-iam")
IAM_AUDIENCE = os.getenv("IAM_AUDIENCE", "supplyhub-core")


@dataclass
class Principal:
    user_id: str | None = None
    username: str = "anonymous"
    roles: list[str] = field(default_factory=list)

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True)
class CompanyContext:
    """Caller resolved to the company it acts for."""

    user_id: str
    company_id: str
    company_type: CompanyType
    trade_name: str


def _make_jti() -> str:
    return secrets.token_urlsafe(16)


def create_access_token(user_id: str, *, email: str = "", roles: Iterable[str] = (), ttl_minutes: int | None = None) -> str:
    """Mint a bearer token. Tokens are normally issued by the identity service;
    this exists for local tooling and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "iss": IAM_ISSUER,
        "aud": IAM_AUDIENCE,
        "jti": _make_jti(),
        "sub": user_id,
        "email": email,
        "roles": sorted(set(roles)),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes or JWT_TTL_MIN)).timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Principal:
    if not creds or not creds.credentials:
        # Anonymous
        return Principal()

    try:
        payload = jwt.decode(
            creds.credentials,
            JWT_SECRET,
            algorithms=[JWT_ALG],
            audience=IAM_AUDIENCE,
            issuer=IAM_ISSUER,
        )
    except JWTError:
        return Principal()

    user_id = payload.get("sub")
    if not user_id:
        return Principal()
    roles = [str(r) for r in (payload.get("roles") or [])]
    return Principal(user_id=str(user_id), username=payload.get("email") or str(user_id), roles=roles)


def resolve_company(db: Session, user_id: str, company_type: CompanyType) -> CompanyContext | None:
    row = (
        db.query(Company)
        .join(CompanyUser, CompanyUser.company_id == Company.id)
        .filter(CompanyUser.user_id == user_id, Company.type == company_type)
        .order_by(CompanyUser.created_at.asc())
        .first()
    )
    if not row:
        return None
    return CompanyContext(user_id=user_id, company_id=row.id, company_type=row.type, trade_name=row.trade_name)


def require_company(company_type: CompanyType) -> Callable:
    def _dep(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> CompanyContext:
        if not principal.user_id:
            raise HTTPException(status_code=401, detail="Not authenticated")
        ctx = resolve_company(db, principal.user_id, company_type)
        if ctx is None:
            detail = {
                "error": "company_required",
                "company_type": company_type.value,
                "message": f"You must be linked to a {company_type.value.lower()} company",
            }
            raise HTTPException(status_code=403, detail=detail)
        return ctx

    return _dep


require_supplier = require_company(CompanyType.SUPPLIER)
require_brand = require_company(CompanyType.BRAND)


def require_roles(required: Iterable[str]) -> Callable:
    required_set = set(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.user_id:
            raise HTTPException(status_code=401, detail="Not authenticated")
        missing = [r for r in required_set if not principal.has_role(r)]
        if missing:
            raise HTTPException(status_code=403, detail={"error": "missing_roles", "missing": sorted(missing)})
        return principal

    return _dep
