from fastapi import HTTPException, status, Request
from jose import JWTError
from app.core.security import verify_token


def get_current_owner_id(request: Request) -> int:
    """
    Extract and validate the JWT from the Authorization Bearer header and return the caller's id.

    Tokens are issued by the identity service after login/OTP verification;
    this service only verifies the signature and reads the ``id`` claim.
    The id is then passed explicitly through service and CRUD layers so every
    query is scoped to the caller's deliveries.

    Args:
        request: FastAPI Request to extract Authorization header

    Returns:
        Owner (driver) id

    Raises:
        HTTPException: If token is missing, invalid or has no id claim
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    authorization = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        raise credentials_exception

    token = authorization.replace("Bearer ", "")

    try:
        payload = verify_token(token)
    except JWTError:
        raise credentials_exception

    owner_id = payload.get("id")
    if owner_id is None:
        raise credentials_exception

    try:
        return int(owner_id)
    except (TypeError, ValueError):
        raise credentials_exception
