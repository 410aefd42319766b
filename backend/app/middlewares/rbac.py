from fastapi import Depends, HTTPException, status, Request
from app.services.token_service import verify_token

def _extract_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.split(" ", 1)[1]
    # Optional: cookie fallback
    cookie_token = request.cookies.get("access_token")
    if cookie_token:
        return cookie_token
    return None

# Dependency to extract full JWT claims
def get_current_claims(request: Request) -> dict:
    token = _extract_bearer_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid token.")
    payload = verify_token(token)
    if payload is None or payload.get("scope") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token.")
    if not payload.get("uid"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token (missing uid)")
    return payload

# Dependency to require specific roles; returns claims for downstream usage
def require_roles(*roles: str):
    def dependency(claims: dict = Depends(get_current_claims)):
        role = claims.get("role", "user")
        if role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions.")
        return claims
    return dependency
