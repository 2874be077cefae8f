import hmac

from fastapi import Request

from shared.errors import UnauthorizedError

DEFAULT_AUTH_USER_HEADER = "X-User-Id"


async def get_owner_id(request: Request) -> str:
    """Resolve the authenticated owner of the request.

    The owner id is set by an upstream identity proxy in the header named by
    AUTH_USER_HEADER. When API_SERVER_API_KEY is configured, the request must
    also carry it in X-Api-Key.

    Args:
        request (Request): The FastAPI request object (provides app.state).

    Returns:
        str: The owner id.

    Raises:
        UnauthorizedError: If the owner header is missing or the API key does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("API_SERVER_API_KEY", default="")
    if expected_key:
        provided_key = request.headers.get("X-Api-Key", "")
        if not hmac.compare_digest(provided_key.encode(), expected_key.encode()):
            raise UnauthorizedError()

    header_name = helper_config.get_string_val("AUTH_USER_HEADER", default=DEFAULT_AUTH_USER_HEADER)
    owner_id = (request.headers.get(header_name) or "").strip()
    if not owner_id:
        raise UnauthorizedError()
    return owner_id
