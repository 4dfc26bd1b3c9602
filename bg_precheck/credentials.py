"""Database credential lookup from AWS Secrets Manager and SSM Parameter Store.

RDS and Aurora keep master credentials in Secrets Manager as a JSON document
with ``username`` and ``password`` keys (plus ``host``, ``port``...). The same
layout is accepted from a SecureString SSM parameter.
"""
import base64
import json
import logging
import re
from typing import Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import CredentialError

logger = logging.getLogger(__name__)

# arn:aws:ssm:region:account-id:parameter/path
SSM_ARN_PATTERN = re.compile(
    r'^arn:aws:ssm:[a-z0-9-]+:\d{12}:parameter/[\w/\-._]+$'
)

# arn:aws:secretsmanager:region:account-id:secret:name-abcdef
SECRETS_MANAGER_ARN_PATTERN = re.compile(
    r'^arn:aws:secretsmanager:[a-z0-9-]+:\d{12}:secret:[\w/\-._!]+-[A-Za-z0-9]+$'
)


def validate_secret_arn(arn: Optional[str]) -> bool:
    """Validate AWS secret ARN format.

    Args:
        arn: AWS SSM Parameter Store or Secrets Manager ARN

    Returns:
        True if the ARN has a supported format, False otherwise
    """
    if not arn:
        return False
    return bool(SSM_ARN_PATTERN.match(arn) or SECRETS_MANAGER_ARN_PATTERN.match(arn))


def sanitize_secret_arn_for_logging(arn: Optional[str]) -> Optional[str]:
    """Mask the account ID of an ARN so it can be logged."""
    if not arn:
        return arn
    return re.sub(r':\d{12}:', ':****:', arn)


class CredentialManager:
    """Reads database credentials from AWS.

    Lookups are cached per ARN for the lifetime of the manager, so an
    endpoints file sharing one secret fetches it once.
    """

    def __init__(self, ssm_client=None, secrets_manager_client=None, region_name: Optional[str] = None):
        """Initialize the credential manager.

        Args:
            ssm_client: Optional boto3 SSM client (for testing)
            secrets_manager_client: Optional boto3 Secrets Manager client (for testing)
            region_name: Region for clients created here; defaults to the ARN's region
        """
        self._ssm = ssm_client
        self._secrets_manager = secrets_manager_client
        self._region_name = region_name
        self._cache: Dict[str, dict] = {}

    def _region_for(self, arn: str) -> Optional[str]:
        return self._region_name or arn.split(':')[3] or None

    def _ssm_client(self, arn: str):
        if self._ssm is None:
            self._ssm = boto3.client('ssm', region_name=self._region_for(arn))
        return self._ssm

    def _secrets_manager_client(self, arn: str):
        if self._secrets_manager is None:
            self._secrets_manager = boto3.client('secretsmanager', region_name=self._region_for(arn))
        return self._secrets_manager

    def get_credentials(self, secret_arn: str) -> dict:
        """Retrieve a credential document.

        Args:
            secret_arn: AWS SSM Parameter Store or Secrets Manager ARN

        Returns:
            Dictionary containing credential data

        Raises:
            CredentialError: If the ARN is invalid, the AWS call fails or the
                secret is not a JSON object
        """
        if not validate_secret_arn(secret_arn):
            raise CredentialError(f"Invalid secret ARN format: {sanitize_secret_arn_for_logging(secret_arn)}")

        if secret_arn in self._cache:
            logger.debug(f"Cache hit for {sanitize_secret_arn_for_logging(secret_arn)}")
            return self._cache[secret_arn]

        try:
            if secret_arn.startswith('arn:aws:ssm:'):
                creds = self._fetch_from_ssm(secret_arn)
            else:
                creds = self._fetch_from_secrets_manager(secret_arn)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                f"Failed to retrieve credentials for {sanitize_secret_arn_for_logging(secret_arn)}: {e}"
            )
            raise CredentialError(f"Could not read secret: {e}") from e
        except ValueError as e:
            raise CredentialError(f"Secret is not valid JSON: {e}") from e

        if not isinstance(creds, dict):
            raise CredentialError("Secret must be a JSON object with 'username' and 'password' keys")

        self._cache[secret_arn] = creds
        logger.info(f"Retrieved credentials for {sanitize_secret_arn_for_logging(secret_arn)}")
        return creds

    def _fetch_from_ssm(self, arn: str) -> dict:
        # arn:aws:ssm:region:account:parameter/path -> /path
        param_name = arn.split(':parameter')[-1]

        response = self._ssm_client(arn).get_parameter(
            Name=param_name,
            WithDecryption=True
        )
        return json.loads(response['Parameter']['Value'])

    def _fetch_from_secrets_manager(self, arn: str) -> dict:
        response = self._secrets_manager_client(arn).get_secret_value(SecretId=arn)

        # Handle both string and binary secrets
        if 'SecretString' in response:
            return json.loads(response['SecretString'])
        return json.loads(base64.b64decode(response['SecretBinary']))

    def get_login(self, secret_arn: str) -> Tuple[Optional[str], str]:
        """Return ``(username, password)`` from a credential document.

        Raises:
            CredentialError: If the document has no password
        """
        creds = self.get_credentials(secret_arn)
        password = creds.get('password')
        if not password:
            raise CredentialError(
                f"Secret {sanitize_secret_arn_for_logging(secret_arn)} has no 'password' key"
            )
        return creds.get('username'), password
