"""
Manifest builders for the cluster objects this workflow applies.

Objects are built as plain dicts and serialized with `yaml.safe_dump`, so names
and values taken from configuration are always quoted correctly.
"""

from __future__ import annotations

import typing

import yaml

import ocpwi

Manifest = dict[str, typing.Any]


def dump(*manifests: Manifest) -> str:
    return yaml.safe_dump_all(list(manifests), sort_keys=False)


def namespace(name: str) -> Manifest:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": name},
    }


def service_account(
    name: str,
    ns: str,
    client_id: str,
    tenant_id: str | None = None,
    *,
    use_label: bool = False,
) -> Manifest:
    annotations = {str(ocpwi.Annotations.CLIENT_ID): client_id}
    if tenant_id:
        annotations[str(ocpwi.Annotations.TENANT_ID)] = tenant_id

    metadata: dict[str, typing.Any] = {
        "name": name,
        "namespace": ns,
        "annotations": annotations,
    }
    if use_label:
        metadata["labels"] = {str(ocpwi.Labels.USE): "true"}

    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": metadata,
    }


def deployment(
    name: str,
    ns: str,
    service_account_name: str,
    image: str,
    replicas: int = 1,
) -> Manifest:
    """The PoC workload: a single idle container whose pod opts into identity injection."""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": ns},
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": {"app": name}},
            "template": {
                "metadata": {
                    "labels": {
                        "app": name,
                        str(ocpwi.Labels.USE): "true",
                    },
                },
                "spec": {
                    "serviceAccountName": service_account_name,
                    "containers": [
                        {
                            "name": "workload",
                            "image": image,
                            "command": ["sleep", "infinity"],
                        }
                    ],
                },
            },
        },
    }


def cluster_secret_store(
    name: str,
    vault_url: str,
    service_account_name: str,
    service_account_namespace: str,
) -> Manifest:
    return {
        "apiVersion": "external-secrets.io/v1",
        "kind": "ClusterSecretStore",
        "metadata": {"name": name},
        "spec": {
            "provider": {
                "azurekv": {
                    "authType": "WorkloadIdentity",
                    "vaultUrl": vault_url,
                    "serviceAccountRef": {
                        "name": service_account_name,
                        "namespace": service_account_namespace,
                    },
                },
            },
        },
    }


def external_secret(
    name: str,
    ns: str,
    store_name: str,
    data: list[tuple[str, str]],
    refresh_interval: str = "1h",
) -> Manifest:
    return {
        "apiVersion": "external-secrets.io/v1",
        "kind": "ExternalSecret",
        "metadata": {"name": name, "namespace": ns},
        "spec": {
            "refreshInterval": refresh_interval,
            "secretStoreRef": {"name": store_name, "kind": "ClusterSecretStore"},
            "target": {"name": name, "creationPolicy": "Owner"},
            "data": [
                {"secretKey": secret_key, "remoteRef": {"key": remote_key}} for secret_key, remote_key in data
            ],
        },
    }
