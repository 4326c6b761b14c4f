from typing import Tuple

from fastapi import HTTPException, Request

from app.services.auth_service import verify_token


def _parse_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    return parts[1].strip()


def _verified_claims(request: Request) -> dict:
    claims = getattr(request.state, "claims", None)
    if claims is not None:
        return claims

    token = _parse_bearer_token(request)
    try:
        claims = verify_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    request.state.claims = claims
    return claims


def require_auth(request: Request) -> Tuple[str, str]:
    claims = _verified_claims(request)

    user_id = str(claims.get("sub"))
    token_company_id = str(claims.get("company_id"))

    header_company_id = request.headers.get("X-Company-Id")
    if header_company_id is None or not header_company_id.strip():
        raise HTTPException(status_code=403, detail="Missing X-Company-Id header")

    if header_company_id.strip() != token_company_id:
        raise HTTPException(status_code=403, detail="Company mismatch")

    request.state.user_id = user_id
    request.state.company_id = token_company_id

    return user_id, token_company_id
