from __future__ import annotations

import dataclasses
import os
import typing

import deepmerge  # type: ignore
import yaml

import ocpwi

if typing.TYPE_CHECKING:
    import pathlib

# Lists in the config file replace the defaults instead of extending them.
merger = deepmerge.Merger(
    [(list, ["override"]), (dict, ["merge"]), (set, ["override"])],
    ["override"],
    ["override"],
)

ENV_OVERRIDES = {
    "OCPWI_RESOURCE_GROUP": "resource_group",
    "OCPWI_LOCATION": "location",
    "OCPWI_STORAGE_ACCOUNT": "storage_account",
    "OCPWI_ISSUER_URL": "issuer_url",
    "OCPWI_TENANT_ID": "tenant_id",
    "OCPWI_KEY_DIR": "key_dir",
    "OCPWI_KUBECONFIG": "kubeconfig",
}


@dataclasses.dataclass(frozen=True)
class WebhookConfig:
    namespace: str = "azure-workload-identity-system"
    release: str = "workload-identity-webhook"
    chart_repo_name: str = "azure-workload-identity"
    chart_repo_url: str = "https://azure.github.io/azure-workload-identity/charts"
    chart: str = "workload-identity-webhook"
    chart_version: str | None = None
    service_account: str = "azure-wi-webhook-admin"
    scc: str = "nonroot-v2"

    @property
    def chart_ref(self) -> str:
        return f"{self.chart_repo_name}/{self.chart}"


@dataclasses.dataclass(frozen=True)
class PocConfig:
    project: str = "wi-poc-test"
    service_account: str = "wi-test-sa"
    identity_name: str = "wi-poc-identity"
    deployment: str = "wi-test"
    image: str = "nginx:alpine"
    rollout_timeout: str = "60s"

    @property
    def federated_credential_name(self) -> str:
        return f"kubernetes-federated-{self.project}"


@dataclasses.dataclass(frozen=True)
class ExternalSecretData:
    secret_key: str
    remote_key: str


def _default_external_secret_data() -> list[ExternalSecretData]:
    return [
        ExternalSecretData(secret_key="api-key", remote_key="datadog-api-key"),
        ExternalSecretData(secret_key="app-key", remote_key="datadog-app-key"),
    ]


@dataclasses.dataclass(frozen=True)
class KeyVaultConfig:
    name: str | None = None
    resource_group: str = "external-secrets-rg"
    identity_name: str = "external-secrets-identity"
    namespace: str = "external-secrets"
    service_account: str = "workload-identity-sa"
    cluster_secret_store: str = "azure-keyvault-store"
    target_namespace: str = "datadog"
    external_secret: str = "datadog-credentials"
    refresh_interval: str = "1h"
    role: str = "Key Vault Secrets User"
    data: list[ExternalSecretData] = dataclasses.field(default_factory=_default_external_secret_data)

    def __post_init__(self):
        if not isinstance(self.data, list):
            msg = f"config key 'keyvault.data' must be a list, got {type(self.data).__name__}"
            raise ValueError(msg)

        # Entries arrive as plain dicts when loaded from YAML.
        data = []
        for i, d in enumerate(self.data):
            if not isinstance(d, ExternalSecretData):
                d = _mapping(f"keyvault.data[{i}]", d)
                _check_keys(f"keyvault.data[{i}]", ExternalSecretData, d)
                d = ExternalSecretData(**d)
            data.append(d)

        object.__setattr__(self, "data", data)

    @property
    def vault_url(self) -> str:
        if not self.name:
            msg = "keyvault.name must be set to use the Key Vault integration"
            raise ValueError(msg)

        return f"https://{self.name}.vault.azure.net"

    @property
    def federated_credential_name(self) -> str:
        return f"external-secrets-federated-{self.namespace}"


@dataclasses.dataclass(frozen=True)
class WorkloadIdentityConfig:
    resource_group: str = "wi-poc-rg"
    location: str = "eastus"
    storage_account: str | None = None
    storage_auth_mode: str = "key"
    issuer_url: str | None = None
    tenant_id: str | None = None
    kubeconfig: str | None = None
    key_dir: str | None = None
    backup_dir: str | None = None
    webhook: WebhookConfig = dataclasses.field(default_factory=WebhookConfig)
    poc: PocConfig = dataclasses.field(default_factory=PocConfig)
    keyvault: KeyVaultConfig = dataclasses.field(default_factory=KeyVaultConfig)

    def require_storage_account(self) -> str:
        if not self.storage_account:
            msg = "storage_account must be set (config file or OCPWI_STORAGE_ACCOUNT)"
            raise ValueError(msg)

        return self.storage_account


_SECTIONS: dict[str, type] = {
    "webhook": WebhookConfig,
    "poc": PocConfig,
    "keyvault": KeyVaultConfig,
}


def _underscored(d: dict[str, typing.Any]) -> dict[str, typing.Any]:
    return {str(key).replace("-", "_"): value for key, value in d.items()}


def _mapping(section: str, value: typing.Any) -> dict[str, typing.Any]:
    """An empty YAML section (``webhook:``) loads as None and means no overrides."""
    if value is None:
        return {}

    if not isinstance(value, dict):
        msg = f"config key {section!r} must be a mapping, got {type(value).__name__}"
        raise ValueError(msg)

    return _underscored(value)


def _check_keys(section: str, cls: type, d: dict[str, typing.Any]) -> None:
    known = {f.name for f in dataclasses.fields(cls)}
    missing = sorted(
        f.name
        for f in dataclasses.fields(cls)
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING and f.name not in d
    )
    unknown = sorted(set(d) - known)
    if unknown:
        msg = f"unknown config keys in {section!r}: {', '.join(unknown)}"
        raise ValueError(msg)

    if missing:
        msg = f"missing config keys in {section!r}: {', '.join(missing)}"
        raise ValueError(msg)


def load_config(
    path: pathlib.Path | None = None,
    environ: typing.Mapping[str, str] | None = None,
) -> WorkloadIdentityConfig:
    environ = os.environ if environ is None else environ

    spec: dict[str, typing.Any] = dataclasses.asdict(WorkloadIdentityConfig())

    if path is not None and path.exists():
        cfg_dict = _mapping(str(path), yaml.safe_load(path.read_text()))

        if cfg_dict.get("kind") != ocpwi.CONFIG_KIND or cfg_dict.get("apiVersion") != ocpwi.CONFIG_API_VERSION:
            msg = (
                f"mismatched config kind={cfg_dict.get('kind')!r} "
                f"apiVersion={cfg_dict.get('apiVersion')!r} in {str(path)!r}"
            )
            raise ValueError(msg)

        file_spec = _mapping("spec", cfg_dict.get("spec"))
        for section in _SECTIONS:
            if section in file_spec:
                file_spec[section] = _mapping(section, file_spec[section])

        merger.merge(spec, file_spec)

    for env_key, field_name in ENV_OVERRIDES.items():
        if environ.get(env_key, "") != "":
            spec[field_name] = environ[env_key]

    _check_keys("spec", WorkloadIdentityConfig, spec)
    for section, cls in _SECTIONS.items():
        _check_keys(section, cls, spec[section])
        spec[section] = cls(**spec[section])

    return WorkloadIdentityConfig(**spec)


def dump_config(cfg: WorkloadIdentityConfig) -> str:
    return yaml.safe_dump(
        {
            "apiVersion": ocpwi.CONFIG_API_VERSION,
            "kind": ocpwi.CONFIG_KIND,
            "spec": dataclasses.asdict(cfg),
        },
        sort_keys=False,
    )
