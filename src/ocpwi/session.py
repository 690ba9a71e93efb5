from __future__ import annotations

import functools
import os

import ocpwi
import ocpwi.az
import ocpwi.config
import ocpwi.paths


class WorkloadIdentitySession:
    cfg: ocpwi.config.WorkloadIdentityConfig
    paths: ocpwi.paths.Paths

    def __init__(
        self,
        cfg: ocpwi.config.WorkloadIdentityConfig,
        paths: ocpwi.paths.Paths | None = None,
    ):
        self.cfg = cfg
        self.paths = paths or ocpwi.paths.Paths(key_dir=cfg.key_dir, backup_dir=cfg.backup_dir)

    @classmethod
    def load(cls, paths: ocpwi.paths.Paths) -> WorkloadIdentitySession:
        cfg = ocpwi.config.load_config(paths.config)

        return cls(
            cfg,
            ocpwi.paths.Paths(
                paths.root,
                key_dir=cfg.key_dir,
                backup_dir=cfg.backup_dir,
                config=paths.config,
            ),
        )

    @property
    def exe_env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.cfg.kubeconfig:
            env["KUBECONFIG"] = self.cfg.kubeconfig

        return env

    @functools.cached_property
    def tenant_id(self) -> str:
        if self.cfg.tenant_id:
            return self.cfg.tenant_id

        return ocpwi.az.tenant_id(exe_env=self.exe_env)

    @functools.cached_property
    def issuer_url(self) -> str:
        if self.cfg.issuer_url:
            return ocpwi.normalize_issuer(self.cfg.issuer_url)

        return ocpwi.normalize_issuer(
            ocpwi.az.storage_web_endpoint(
                self.cfg.require_storage_account(),
                self.cfg.resource_group,
                exe_env=self.exe_env,
            )
        )

    @property
    def discovery_url(self) -> str:
        return f"{self.issuer_url}/{ocpwi.DISCOVERY_BLOB_PATH}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer_url}/{ocpwi.JWKS_BLOB_PATH}"
