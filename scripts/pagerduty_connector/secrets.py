"""Cloud-native secret resolution for the PagerDuty access token.

Resolves secrets from AWS Secrets Manager or GCP Secret Manager based on the
reference prefix, falling back to the literal value for local development.
"""

from __future__ import annotations

import json
import logging
import os

logger = logging.getLogger("pagerduty.secrets")

_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"


def resolve_secret(value: str) -> str:
    """Resolve a secret reference to its plaintext value.

    Supported formats:
      - "aws-secret://secret-name"         -> AWS Secrets Manager
      - "aws-secret://secret-name#key"     -> AWS Secrets Manager (JSON key)
      - "gcp-secret://project/secret/ver"  -> GCP Secret Manager
      - anything else                      -> returned as-is
    """
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    if value.startswith(_GCP_PREFIX):
        return _resolve_gcp_secret(value[len(_GCP_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    import boto3

    secret_name, _, json_key = ref.partition("#")
    region = os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("secretsmanager", region_name=region)

    logger.info("Resolving access token from AWS Secrets Manager")
    secret_string = client.get_secret_value(SecretId=secret_name)["SecretString"]
    if json_key:
        return str(json.loads(secret_string)[json_key])
    return secret_string


def _resolve_gcp_secret(ref: str) -> str:
    """ref is "projects/P/secrets/NAME/versions/V" or a bare secret name."""
    from google.cloud import secretmanager

    client = secretmanager.SecretManagerServiceClient()
    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "")
        if not project:
            raise RuntimeError(
                "Cannot determine GCP project ID. Set GCP_PROJECT_ID env var."
            )
        name = f"projects/{project}/secrets/{ref}/versions/latest"

    logger.info("Resolving access token from GCP Secret Manager")
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


def resolve_access_token() -> str:
    """Resolve PAGERDUTY_ACCESS_TOKEN from env, with cloud secret support."""
    return resolve_secret(os.environ.get("PAGERDUTY_ACCESS_TOKEN", ""))
