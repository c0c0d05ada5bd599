import datetime

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from carbon_registry.logging_config import logger
from carbon_registry.settings import settings as st

bearer_scheme = HTTPBearer(auto_error=False)


JWT_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired JWT access-token",
    headers={"WWW-Authenticate": "Bearer"},
)


MISSING_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Missing authentication credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def create_access_token(
    identity: str, expires_delta: datetime.timedelta | None = None
) -> str:
    """Create an access token asserting the given ledger identity.

    Args:
        identity (str): The identity the bearer acts as; stored in the `sub` claim.
        expires_delta (datetime.timedelta): Time until the token expires.

    Returns:
        encoded_jwt: The encoded JWT token.

    """
    if expires_delta is None:
        expires_delta = datetime.timedelta(minutes=st.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.datetime.now(datetime.timezone.utc) + expires_delta
    to_encode = {"sub": identity, "exp": expire}
    return jwt.encode(to_encode, st.JWT_SECRET_KEY, algorithm=st.JWT_ALGORITHM)


def decode_identity(token: str) -> str:
    try:
        payload = jwt.decode(token, st.JWT_SECRET_KEY, algorithms=[st.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected access token: {str(e)}")
        raise JWT_CREDENTIALS_EXCEPTION

    identity = payload.get("sub")
    if not identity:
        raise JWT_CREDENTIALS_EXCEPTION
    return identity


async def get_caller_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """The acting identity of a request, taken from its bearer token."""
    if credentials is None:
        raise MISSING_CREDENTIALS_EXCEPTION
    return decode_identity(credentials.credentials)
