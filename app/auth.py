import os
from pathlib import Path
from dotenv import load_dotenv
from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


def verify_token(authorization: str = Header(...)) -> dict:
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("unsupported scheme")
        return jwt.decode(token, os.getenv("JWT_SECRET"), algorithms=["HS256"])
    except (ValueError, JWTError):
        raise HTTPException(status_code=401, detail="Invalid or missing token")


def require_admin(claims: dict = Depends(verify_token)) -> dict:
    if claims.get("role") != "ADMIN":
        raise HTTPException(status_code=403, detail="Admin only")
    return claims


def require_team_access(team_id: str, claims: dict = Depends(verify_token)) -> dict:
    """Participants may only act on the team carried in their token."""
    if claims.get("role") == "ADMIN":
        return claims
    if claims.get("team_id") != team_id:
        raise HTTPException(status_code=403, detail="Not a member of this team")
    return claims
