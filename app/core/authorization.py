from enum import Enum

from fastapi import Depends, HTTPException, Request

from app.deps.auth import _verified_claims, require_auth


class Role(Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SALES_REP = "SALES_REP"


ROLE_RANK = {
    Role.SALES_REP: 1,
    Role.ADMIN: 2,
    Role.SUPER_ADMIN: 3,
}


def require_role(role: Role):
    def dependency(request: Request, _auth: tuple[str, str] = Depends(require_auth)):
        claims = _verified_claims(request)

        claim_role = claims.get("role") or Role.SALES_REP.value

        try:
            user_role = Role(str(claim_role).upper())
        except ValueError as exc:
            raise HTTPException(status_code=403, detail="Invalid role claim") from exc

        if ROLE_RANK[user_role] < ROLE_RANK[role]:
            raise HTTPException(status_code=403, detail="Insufficient role")

        request.state.role = user_role.value
        return user_role

    return dependency
