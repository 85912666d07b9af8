import secrets

from fastapi import Header, HTTPException, Request


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Compare the X-Api-Key header with API_SERVER_API_KEY in constant time.

    Raises:
        HTTPException: 503 if no key is configured, 401 if the key does not match.
    """
    helper_config = request.app.state.helper_config
    try:
        expected_key = helper_config.get_string_val("API_SERVER_API_KEY")
    except ValueError:
        helper_config.get_logger().error("API_SERVER_API_KEY is not set, rejecting request to %s", request.url.path)
        raise HTTPException(status_code=503, detail="Server API key is not configured")
    if not secrets.compare_digest(x_api_key.encode("utf-8"), expected_key.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
