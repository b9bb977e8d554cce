import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import get_settings
from app.core.security import decode_access_token

logger = logging.getLogger(__name__)
settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_token_payload(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> dict:
    cookie_token = request.cookies.get(settings.auth_cookie_name)
    credentials_token = cookie_token or token
    if not credentials_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing credentials")

    payload = decode_access_token(credentials_token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return payload


async def get_current_company(payload: dict = Depends(get_token_payload)) -> str:
    """
    FastAPI dependency that extracts company_id from the session token.

    Every tenant-scoped endpoint depends on this so that the company is never
    taken from the request body or path.
    """
    company_id = payload.get("company_id")
    if not company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is not associated with a company"
        )
    return company_id


async def get_current_user_id(payload: dict = Depends(get_token_payload)) -> str:
    return payload["sub"]
