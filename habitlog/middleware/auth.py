from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
import os

from habitlog.constants import DEFAULT_JWT_SECRET, DEFAULT_JWT_ALGORITHM
from habitlog.exceptions import NotAuthenticated, ValidationError
from habitlog.validation import validate_user_id

# Identity tokens are issued by the external auth provider with this shared secret
JWT_SECRET = os.getenv("HABITLOG_JWT_SECRET", DEFAULT_JWT_SECRET)
JWT_ALGORITHM = os.getenv("HABITLOG_JWT_ALGORITHM", DEFAULT_JWT_ALGORITHM)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)
) -> str:
    """Resolve the user id (the token's "sub" claim) for the request"""
    if not credentials or not credentials.credentials:
        raise NotAuthenticated("Missing bearer token")
    try:
        payload = jwt.decode(credentials.credentials, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise NotAuthenticated("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthenticated("Token has no subject")
    try:
        return validate_user_id(user_id)
    except ValidationError:
        raise NotAuthenticated("Token subject is not a valid user ID")
