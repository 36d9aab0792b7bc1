"""
Outbound header composition for signed partner calls
"""

from typing import TYPE_CHECKING, Dict, Optional, Union

from ..exceptions import ValidationError
from .types import (
    HeaderDict,
    HeaderFamily,
    SignedMessage,
    HEADER_AUTHORIZATION,
    HEADER_CHANNEL_ID,
    HEADER_CLIENT_KEY,
    HEADER_CONTENT_TYPE,
    HEADER_EXTERNAL_ID,
    HEADER_PARTNER_ID,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    JSON_CONTENT_TYPE,
)
from .utils import generate_external_id

if TYPE_CHECKING:
    from ..session import AccessToken

_ID_HEADER = {
    HeaderFamily.CLIENT: HEADER_CLIENT_KEY,
    HeaderFamily.PARTNER: HEADER_PARTNER_ID,
}


def compose_headers(
    family: Union[HeaderFamily, str],
    client_id: str,
    signed: SignedMessage,
    channel_id: str,
    access_token: Optional["AccessToken"] = None,
    external_id: Optional[str] = None,
    extra_headers: Optional[Dict[str, str]] = None
) -> HeaderDict:
    """
    Build the header set for one outbound call.

    X-TIMESTAMP and X-SIGNATURE both come from the same SignedMessage, so the
    header timestamp is always the one that was signed. A new dict is
    returned on every call.

    Args:
        family: CLIENT (X-CLIENT-KEY) or PARTNER (X-PARTNER-ID)
        client_id: Partner-issued client id
        signed: Signed canonical string for this call
        channel_id: CHANNEL-ID value
        access_token: Bearer token snapshot; adds Authorization when given
        external_id: X-EXTERNAL-ID value (fresh UUID v4 when None)
        extra_headers: Additional headers; cannot override signing headers

    Returns:
        dict: Header name to value

    Raises:
        ValidationError: If inputs are missing or extra headers collide
    """
    family = HeaderFamily(family)

    if not client_id:
        raise ValidationError("client_id cannot be empty")
    if not channel_id:
        raise ValidationError("channel_id cannot be empty")

    headers = {
        HEADER_CONTENT_TYPE: JSON_CONTENT_TYPE,
        _ID_HEADER[family]: client_id,
        HEADER_TIMESTAMP: signed.timestamp,
        HEADER_EXTERNAL_ID: external_id or generate_external_id(),
        HEADER_CHANNEL_ID: channel_id,
        HEADER_SIGNATURE: signed.signature,
    }

    if access_token is not None:
        headers[HEADER_AUTHORIZATION] = f"{access_token.token_type} {access_token.value}"

    if extra_headers:
        reserved = {name.lower() for name in headers}
        clashes = [name for name in extra_headers if name.lower() in reserved]
        if clashes:
            raise ValidationError(
                f"Extra headers cannot override signing headers: {', '.join(clashes)}",
                details={"headers": clashes}
            )
        headers.update(extra_headers)

    return headers
