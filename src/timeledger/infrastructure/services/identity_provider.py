"""AWS Cognito adapter of the external identity provider port.

boto3 is synchronous, so every call runs in a worker thread. Cognito errors
are translated into `IdentityProviderError` / `IdentityUserNotFoundError`.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from timeledger.core.exceptions import IdentityProviderError, IdentityUserNotFoundError
from timeledger.core.logging import mask_email
from timeledger.domain.interfaces.services import IIdentityProvider

logger = structlog.get_logger(__name__)


def _error_code(exc: Exception) -> Optional[str]:
    if not isinstance(exc, ClientError):
        return None
    return exc.response.get("Error", {}).get("Code")


def _attribute_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class CognitoIdentityProvider(IIdentityProvider):
    """`IIdentityProvider` backed by a Cognito user pool.

    Args:
        user_pool_id: Target user pool.
        region: AWS region of the pool.
        client: Pre-built ``cognito-idp`` client (tests inject a stub).
    """

    def __init__(self, user_pool_id: str, region: str, client: Any = None):
        self._user_pool_id = user_pool_id
        self._client = client or boto3.client(
            "cognito-idp",
            region_name=region,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )

    async def get_user(self, username: str) -> Dict[str, Any]:
        try:
            response = await asyncio.to_thread(
                self._client.admin_get_user, UserPoolId=self._user_pool_id, Username=username
            )
        except (ClientError, BotoCoreError) as exc:
            if _error_code(exc) == "UserNotFoundException":
                logger.warning("Identity provider user not found", username=mask_email(username))
                raise IdentityUserNotFoundError() from exc
            logger.error("Identity provider lookup failed", username=mask_email(username), error=str(exc))
            raise IdentityProviderError(f"Identity provider lookup failed: {_error_code(exc) or 'unknown'}") from exc

        attributes = {attr["Name"]: attr["Value"] for attr in response.get("UserAttributes", [])}
        return {
            "username": response.get("Username", username),
            "enabled": response.get("Enabled", True),
            "status": response.get("UserStatus"),
            "attributes": attributes,
        }

    async def update_user_attributes(self, username: str, attributes: Mapping[str, Any]) -> None:
        payload = [{"Name": name, "Value": _attribute_value(value)} for name, value in attributes.items()]
        try:
            await asyncio.to_thread(
                self._client.admin_update_user_attributes,
                UserPoolId=self._user_pool_id,
                Username=username,
                UserAttributes=payload,
            )
        except (ClientError, BotoCoreError) as exc:
            if _error_code(exc) == "UserNotFoundException":
                raise IdentityUserNotFoundError() from exc
            logger.error(
                "Identity provider attribute update failed",
                username=mask_email(username),
                attributes=sorted(attributes),
                error=str(exc),
            )
            raise IdentityProviderError(
                f"Identity provider update failed: {_error_code(exc) or 'unknown'}"
            ) from exc

        logger.info(
            "Identity provider attributes updated",
            username=mask_email(username),
            attributes=sorted(attributes),
        )
