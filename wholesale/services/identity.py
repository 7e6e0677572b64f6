from collections import namedtuple
from flask import current_app
from wholesale.errors import UpstreamError
import httpx
import jwt
import logging

logger = logging.getLogger(__name__)

Identity = namedtuple('Identity', ['external_user_id'])


class IdentityProvider:
    """Client for the external identity provider.

    Session tokens are verified locally (HS256, ``sub`` is the external
    user id); account removal goes through the provider's admin API.
    """

    def __init__(self, jwt_secret, api_url, api_key, algorithm='HS256',
                 timeout=5.0):
        self.jwt_secret = jwt_secret
        self.api_url = (api_url or '').rstrip('/')
        self.api_key = api_key
        self.algorithm = algorithm
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            jwt_secret=config['IDENTITY_JWT_SECRET'],
            api_url=config['IDENTITY_API_URL'],
            api_key=config['IDENTITY_API_KEY'],
            algorithm=config['IDENTITY_JWT_ALGORITHM'],
            timeout=config['IDENTITY_API_TIMEOUT'],
        )

    def current_identity(self, token):
        if not token or not self.jwt_secret:
            return None
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.algorithm],
                options={'require': ['sub']},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired identity token")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected invalid identity token: %s", e)
            return None
        return Identity(external_user_id=str(payload['sub']))

    def delete_identity(self, external_user_id):
        if not self.api_url:
            raise UpstreamError(
                'Identity provider is not configured',
                hint='set IDENTITY_API_URL',
            )
        url = f'{self.api_url}/users/{external_user_id}'
        try:
            response = httpx.delete(
                url,
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Identity provider unreachable: %s", e)
            raise UpstreamError(
                'Identity provider unreachable',
                details=str(e),
            ) from e

        if response.status_code >= 400:
            logger.error(
                "Identity deletion for %s failed with HTTP %s",
                external_user_id,
                response.status_code,
            )
            raise UpstreamError(
                'Failed to delete identity',
                code=str(response.status_code),
                details=response.text[:500],
            )
        logger.info("Deleted external identity %s", external_user_id)


def get_identity_provider():
    provider = current_app.extensions.get('identity_provider')
    if provider is None:
        provider = IdentityProvider.from_config(current_app.config)
        current_app.extensions['identity_provider'] = provider
    return provider
