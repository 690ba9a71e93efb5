from __future__ import annotations

import enum
import typing

AUDIENCE = "api://AzureADTokenExchange"
AUTHENTICATION_NAME = "cluster"
KUBE_APISERVER_NAMESPACE = "openshift-kube-apiserver"
KUBE_APISERVER_OPERATOR_NAMESPACE = "openshift-kube-apiserver-operator"
SIGNING_CERTS_CONFIGMAP = "bound-sa-token-signing-certs"
SIGNING_KEY_SECRET = "next-bound-service-account-signing-key"
SIGNING_KEY_PRIVATE_FIELD = "service-account.key"
SIGNING_KEY_PUBLIC_FIELD = "service-account.pub"
TOKEN_FILE_NAME = "azure-identity-token"
TOKEN_VOLUME_NAME = "azure-identity-token"
WEB_CONTAINER = "$web"

DISCOVERY_BLOB_PATH = ".well-known/openid-configuration"
JWKS_BLOB_PATH = "openid/v1/jwks"

CONFIG_API_VERSION = "ocpwi/v1"
CONFIG_KIND = "WorkloadIdentityConfig"


class Annotations(enum.StrEnum):
    CLIENT_ID = "azure.workload.identity/client-id"
    TENANT_ID = "azure.workload.identity/tenant-id"


class Labels(enum.StrEnum):
    USE = "azure.workload.identity/use"


class InjectedEnv(enum.StrEnum):
    AZURE_AUTHORITY_HOST = "AZURE_AUTHORITY_HOST"
    AZURE_CLIENT_ID = "AZURE_CLIENT_ID"
    AZURE_FEDERATED_TOKEN_FILE = "AZURE_FEDERATED_TOKEN_FILE"
    AZURE_TENANT_ID = "AZURE_TENANT_ID"


class ManagedIdentity(typing.TypedDict):
    id: str
    name: str
    clientId: str
    principalId: str
    tenantId: str


class DiscoveryDocument(typing.TypedDict):
    issuer: str
    jwks_uri: str
    response_types_supported: list[str]
    subject_types_supported: list[str]
    id_token_signing_alg_values_supported: list[str]


class JWK(typing.TypedDict, total=False):
    kty: str
    alg: str
    use: str
    kid: str
    n: str
    e: str
    crv: str
    x: str
    y: str


class JWKS(typing.TypedDict):
    keys: list[JWK]


def federated_subject(namespace: str, service_account: str) -> str:
    return f"system:serviceaccount:{namespace}:{service_account}"


def normalize_issuer(url: str) -> str:
    """Issuer URLs are compared byte-for-byte by the token exchange, so keep one form."""
    url = url.strip().rstrip("/")

    if not url.startswith("https://"):
        msg = f"issuer URL must start with 'https://', got {url!r}"
        raise ValueError(msg)

    return url
